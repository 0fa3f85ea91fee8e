"""Typed views over the Slack Web API payloads the archiver consumes.

Only the fields the pipeline reads are modelled; everything else in the raw
payload is ignored.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _SlackModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class AuthInfo(_SlackModel):
    """Result of ``auth.test``."""

    team: Optional[str] = None
    user: Optional[str] = None
    team_id: Optional[str] = None


class Channel(_SlackModel):
    """A conversation as listed by ``conversations.list``."""

    id: str
    name: str = ""


class Reaction(_SlackModel):
    name: str
    count: int = 0


class Message(_SlackModel):
    """A channel message or thread reply.

    A message is a thread root when ``thread_ts`` is empty or equal to its own
    ``ts``; otherwise it is a reply to the message whose ``ts`` is ``thread_ts``.
    """

    ts: Optional[str] = None
    thread_ts: Optional[str] = None
    user: Optional[str] = None
    bot_id: Optional[str] = None
    subtype: Optional[str] = None
    text: Optional[str] = None
    reactions: List[Reaction] = Field(default_factory=list)

    @property
    def is_reply(self) -> bool:
        return self.thread_ts is not None and self.thread_ts != self.ts

    @property
    def is_thread_root(self) -> bool:
        """True for messages that started a thread (``thread_ts == ts``)."""
        return self.thread_ts is not None and self.thread_ts == self.ts

    @property
    def is_parent(self) -> bool:
        """True for thread roots and standalone messages."""
        return not self.is_reply

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Message":
        return cls.model_validate(payload)


class UserProfile(_SlackModel):
    display_name: Optional[str] = None
    real_name: Optional[str] = None


class SlackUser(_SlackModel):
    """Result of ``users.info``."""

    id: Optional[str] = None
    name: Optional[str] = None
    profile: Optional[UserProfile] = None
