"""Display-name resolution for message authors."""

from typing import Optional

from chat_archive.models.slack import SlackUser

UNKNOWN_USER = "unknown"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def display_name(user: Optional[SlackUser]) -> str:
    """Pick the most human-friendly name Slack gives us for ``user``.

    Preference: profile display name, profile real name, account name, user ID.
    """
    if user is None:
        return UNKNOWN_USER
    if user.profile is not None:
        for candidate in (user.profile.display_name, user.profile.real_name):
            if _clean(candidate):
                return _clean(candidate)
    if _clean(user.name):
        return _clean(user.name)
    return _clean(user.id) or UNKNOWN_USER
