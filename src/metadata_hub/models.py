"""Core data structures flowing through the hub pipeline."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .types import PublishedEvent, SessionInfo


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class EventKind(str, Enum):
    NORMAL = "normal"
    RESET = "reset"


@dataclass
class ParsedEvent:
    """A structured event produced from one decoder output line.

    ``fields`` holds the values extracted by the matching rule, including
    ``talkgroup`` when the rule captures one. RESET events carry the reset
    tag in ``reason`` and no fields.
    """
    message: str
    timestamp: int
    name: Optional[str] = None
    fields: dict[str, str] = field(default_factory=dict)
    kind: EventKind = EventKind.NORMAL
    reason: Optional[str] = None

    @property
    def talkgroup(self) -> Optional[str]:
        return self.fields.get('talkgroup')

    @property
    def is_reset(self) -> bool:
        return self.kind is EventKind.RESET

    def to_dict(self) -> PublishedEvent:
        data: PublishedEvent = {
            'message': self.message,
            'timestamp': self.timestamp,
        }
        if self.name is not None:
            data['name'] = self.name
        data.update(self.fields)
        return data


@dataclass
class Session:
    """Activity record for one talkgroup."""
    id: str
    start_time: int
    last_seen: int
    duration: int = 0
    active: bool = True
    name: Optional[str] = None

    def touch(self, timestamp: int) -> None:
        """Record a sighting at ``timestamp`` and recompute the duration."""
        # Wall clock may step backwards; lastSeen never does
        self.last_seen = max(timestamp, self.last_seen)
        self.duration = (self.last_seen - self.start_time) // 1000

    def to_dict(self) -> SessionInfo:
        return {
            'id': self.id,
            'startTime': self.start_time,
            'lastSeen': self.last_seen,
            'duration': self.duration,
            'active': self.active,
            'name': self.name,
        }
