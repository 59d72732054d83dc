"""Glue between decoder output and subscribers.

HubPipeline handles one line at a time, synchronously: parse, update
sessions, publish. Callers on the event loop therefore never observe a
half-processed line.
"""

from typing import Optional

from .broadcaster import Broadcaster
from .logging_config import get_logger
from .parser import LineParser
from .rules import RuleSet
from .sessions import SessionTracker
from .types import PublishedEvent

logger = get_logger(__name__, namespace='parser')


class HubPipeline:
    """LineParser -> SessionTracker -> Broadcaster."""

    def __init__(
        self,
        rules: RuleSet,
        tracker: Optional[SessionTracker] = None,
        broadcaster: Optional[Broadcaster] = None,
    ):
        self.parser = LineParser(rules)
        self.tracker = tracker if tracker is not None else SessionTracker()
        self.broadcaster = broadcaster if broadcaster is not None else Broadcaster()
        self.lines_seen = 0
        self.events_published = 0

    def handle_line(self, line: str, timestamp: Optional[int] = None) -> list[PublishedEvent]:
        """Process one complete decoder line and return what was published."""
        self.lines_seen += 1

        event = self.parser.parse(line, timestamp)
        if event is None:
            return []

        published = self.tracker.apply(event)
        for data in published:
            self.broadcaster.publish(data)
        self.events_published += len(published)
        return published
