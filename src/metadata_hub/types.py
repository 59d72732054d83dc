"""Type definitions for the metadata hub.

TypedDict definitions documenting the JSON shapes published to
subscribers and returned by the snapshot endpoint.
"""

from typing import TypedDict
from typing_extensions import NotRequired


class SessionInfo(TypedDict):
    """Per-talkgroup session state as returned by /active."""
    id: str  # talkgroup identifier
    startTime: int  # epoch ms
    lastSeen: int  # epoch ms
    duration: int  # seconds, floored
    active: bool
    name: str | None


class PublishedEvent(TypedDict, total=False):
    """One event pushed to every /metadata subscriber.

    Rule-extracted fields beyond talkgroup are merged in under their
    configured names.
    """
    message: str
    timestamp: int  # epoch ms
    name: NotRequired[str]
    talkgroup: NotRequired[str]
    duration: NotRequired[int]
    active: NotRequired[bool]
    event: NotRequired[str]  # reset reason, only on deactivation events


class SupervisorStatus(TypedDict):
    """Decoder supervisor status as returned by /status."""
    state: str
    pid: int | None
    command: str | None
    restarts: int
    exit_code: int | None
