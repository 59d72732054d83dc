"""Pattern rules used to interpret decoder output lines.

Rules are loaded once at startup from a JSON array:

    [
      {"name": "TGID", "pattern": "TGID[:=]\\s*(\\d+)", "fields": {"talkgroup": 1}}
    ]

Patterns are compiled case-insensitively at load time. The resulting
RuleSet is an immutable, ordered tuple; the first matching rule wins.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError, field_validator, model_validator

from .logging_config import get_logger

logger = get_logger(__name__, namespace='parser')


class RuleConfigError(Exception):
    """Raised when the rule file cannot be read or validated."""


class RuleEntry(BaseModel):
    """One rule entry as written in the rule file."""

    name: str
    pattern: str
    fields: dict[str, int] = {}

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid pattern {v!r}: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_groups(self) -> "RuleEntry":
        groups = re.compile(self.pattern).groups
        for field_name, index in self.fields.items():
            if index < 0 or index > groups:
                raise ValueError(
                    f"Field {field_name!r} refers to group {index}, "
                    f"but pattern has {groups} group(s)"
                )
        return self


_RULE_LIST = TypeAdapter(list[RuleEntry])


@dataclass(frozen=True)
class Rule:
    """A compiled rule: pattern plus field -> capture group mapping."""
    name: str
    pattern: re.Pattern
    fields: tuple[tuple[str, int], ...]

    @classmethod
    def from_entry(cls, entry: RuleEntry) -> "Rule":
        return cls(
            name=entry.name,
            pattern=re.compile(entry.pattern, re.IGNORECASE),
            fields=tuple(entry.fields.items()),
        )

    def extract(self, match: re.Match) -> dict[str, str]:
        """Read each configured field from its capture group.

        Groups that did not participate in the match are left out.
        """
        extracted = {}
        for field_name, index in self.fields:
            value = match.group(index)
            if value is not None:
                extracted[field_name] = value
        return extracted


class RuleSet:
    """Immutable ordered collection of rules."""

    def __init__(self, rules: Optional[list[Rule]] = None):
        self._rules: tuple[Rule, ...] = tuple(rules or ())

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __bool__(self) -> bool:
        return bool(self._rules)

    @property
    def names(self) -> list[str]:
        return [rule.name for rule in self._rules]

    def match(self, line: str) -> Optional[tuple[Rule, re.Match]]:
        """Return the first rule matching ``line`` and its match object."""
        for rule in self._rules:
            match = rule.pattern.search(line)
            if match:
                return rule, match
        return None

    @classmethod
    def from_data(cls, data) -> "RuleSet":
        """Validate already-decoded rule data and compile it.

        Raises:
            RuleConfigError: If the data is not a list of valid rules
        """
        try:
            entries = _RULE_LIST.validate_python(data)
        except ValidationError as e:
            raise RuleConfigError(f"Invalid rule configuration: {e}") from e
        return cls([Rule.from_entry(entry) for entry in entries])


def load_rules(path: Path, strict: bool = False) -> RuleSet:
    """Load and compile the rule file at ``path``.

    Args:
        path: JSON rule file
        strict: Raise instead of degrading to an empty rule set

    Returns:
        The compiled RuleSet, or an empty one if the file is unusable
        and strict is False

    Raises:
        RuleConfigError: If the file is unusable and strict is True
    """
    try:
        data = json.loads(Path(path).read_text(encoding='utf-8'))
        rules = RuleSet.from_data(data)
    except (OSError, json.JSONDecodeError, RuleConfigError) as e:
        if strict:
            if isinstance(e, RuleConfigError):
                raise
            raise RuleConfigError(f"Cannot load rules from {path}: {e}") from e
        logger.error(f"Error loading rules from {path}: {e}. No lines will be parsed.")
        return RuleSet()

    logger.info(f"Loaded {len(rules)} rule(s) from {path}: {', '.join(rules.names)}")
    return rules
