"""Priority classes for person types."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Mapping, Optional


class PersonPriority(str, Enum):
    """Priority class of a person type."""

    HIGH = "high"
    LOW = "low"
    NEUTRAL = "neutral"


DEFAULT_PRIORITIES: Dict[str, PersonPriority] = {
    "DEBTOR": PersonPriority.HIGH,
    "RELATIVE": PersonPriority.HIGH,
    "POSS POE": PersonPriority.LOW,
}


class PriorityPolicy:
    """Lookup table from person type to priority class.

    Types missing from the table are neutral: always insertable and never
    gated.
    """

    def __init__(self, priorities: Optional[Mapping[str, PersonPriority]] = None):
        table = DEFAULT_PRIORITIES if priorities is None else priorities
        self._priorities: Dict[str, PersonPriority] = {
            type_: PersonPriority(priority) for type_, priority in table.items()
        }

    def priority_of(self, type_: str) -> PersonPriority:
        return self._priorities.get(type_, PersonPriority.NEUTRAL)

    def is_high(self, type_: str) -> bool:
        return self.priority_of(type_) is PersonPriority.HIGH

    def is_low(self, type_: str) -> bool:
        return self.priority_of(type_) is PersonPriority.LOW

    def has_high(self, types: Iterable[str]) -> bool:
        return any(self.is_high(type_) for type_ in types)

    def types_in(self, priority: PersonPriority) -> list[str]:
        return sorted(t for t, p in self._priorities.items() if p is priority)

    def __repr__(self) -> str:
        return f"PriorityPolicy({self._priorities!r})"
