"""Line splitting and rule-driven parsing of decoder output.

This module provides:
- LineSplitter: reassembles complete lines from arbitrary stream chunks
- LineParser: turns one line into a ParsedEvent (or nothing)
"""

from typing import Optional

from .logging_config import get_logger
from .models import EventKind, ParsedEvent, now_ms
from .rules import RuleSet

logger = get_logger(__name__, namespace='parser')


# Lowercase phrase -> reset reason. Any of these ends every active talkgroup.
RESET_PHRASES = {
    'voice timeout': 'voice_timeout',
    'ui timeout': 'ui_timeout',
}


class LineSplitter:
    """Buffers stream chunks and yields complete, non-blank lines.

    A trailing fragment without a terminator is held until the next chunk
    (or flush) completes it.
    """

    def __init__(self):
        self._buffer = ''

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, chunk: str) -> list[str]:
        """Add a chunk and return the lines it completed."""
        if not chunk:
            return []

        data = self._buffer + chunk
        *complete, self._buffer = data.split('\n')
        return [line for line in (_strip_cr(raw) for raw in complete) if line.strip()]

    def flush(self) -> list[str]:
        """Return the buffered partial line, if any, and clear the buffer."""
        remainder = _strip_cr(self._buffer)
        self._buffer = ''
        return [remainder] if remainder.strip() else []


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith('\r') else line


def detect_reset(line: str) -> Optional[str]:
    """Return the reset reason if ``line`` carries a reset phrase."""
    lowered = line.lower()
    for phrase, reason in RESET_PHRASES.items():
        if phrase in lowered:
            return reason
    return None


class LineParser:
    """Applies a RuleSet to single lines."""

    def __init__(self, rules: RuleSet):
        self.rules = rules

    def parse(self, line: str, timestamp: Optional[int] = None) -> Optional[ParsedEvent]:
        """Parse one decoder output line.

        Args:
            line: A complete line of decoder output
            timestamp: Receipt time in epoch ms (default: now)

        Returns:
            A RESET event for reset phrases, a NORMAL event for the first
            matching rule, or None when nothing matches
        """
        if timestamp is None:
            timestamp = now_ms()

        reason = detect_reset(line)
        if reason:
            logger.info(f"Detected {reason.replace('_', ' ')}; ending all active talkgroups.")
            return ParsedEvent(
                message=line,
                timestamp=timestamp,
                kind=EventKind.RESET,
                reason=reason,
            )

        found = self.rules.match(line)
        if found is None:
            logger.debug(f"No rule matched for line: {line}")
            return None

        rule, match = found
        event = ParsedEvent(
            message=line,
            timestamp=timestamp,
            name=rule.name,
            fields=rule.extract(match),
        )
        logger.debug(f'Rule "{rule.name}" matched. Extracted: {event.fields}')
        return event
