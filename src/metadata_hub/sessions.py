"""Talkgroup session tracking.

SessionTracker is the single owner of the talkgroup -> Session map. Every
parsed event goes through apply(), which updates the map and returns the
decorated events to publish.
"""

from typing import Optional

from .logging_config import get_logger
from .models import ParsedEvent, Session
from .types import PublishedEvent, SessionInfo

logger = get_logger(__name__, namespace='sessions')


class SessionTracker:
    """Tracks activity and duration per talkgroup."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def apply(self, event: ParsedEvent) -> list[PublishedEvent]:
        """Update session state for ``event`` and return events to publish.

        - Reset: every active session is deactivated (duration frozen) and
          one deactivation event per talkgroup is returned.
        - Event with a talkgroup: the session is created, replaced (if it
          had ended) or extended, and the event is decorated with its
          duration and active flag.
        - Any other event passes through unchanged.
        """
        if event.is_reset:
            return self._reset(event)

        data = event.to_dict()
        tg = event.talkgroup
        if not tg:
            return [data]

        session = self._sessions.get(tg)
        if session is None or not session.active:
            session = Session(
                id=tg,
                start_time=event.timestamp,
                last_seen=event.timestamp,
                name=event.name,
            )
            self._sessions[tg] = session
            logger.debug(f"Talkgroup {tg} started")
        else:
            session.touch(event.timestamp)

        data['duration'] = session.duration
        data['active'] = session.active
        return [data]

    def _reset(self, event: ParsedEvent) -> list[PublishedEvent]:
        ended = []
        for tg, session in self._sessions.items():
            if not session.active:
                continue
            session.active = False
            ended.append({
                'talkgroup': tg,
                'active': False,
                'timestamp': event.timestamp,
                'event': event.reason,
            })
            logger.debug(f"Talkgroup {tg} ended after {session.duration}s ({event.reason})")
        return ended

    def get(self, talkgroup: str) -> Optional[Session]:
        return self._sessions.get(talkgroup)

    @property
    def active_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.active)

    def snapshot(self) -> list[tuple[str, SessionInfo]]:
        """Current sessions as (talkgroup, session) pairs in first-seen order."""
        return [(tg, session.to_dict()) for tg, session in self._sessions.items()]

    def __len__(self) -> int:
        return len(self._sessions)
