"""Chat Archive: incremental Slack channel mirror rendered as a static document tree."""

__version__ = "0.1.0"
