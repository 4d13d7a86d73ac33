"""Decide how an incoming person merges into a stored phone record.

Rules are evaluated in a fixed order, and the order matters:

1. Priority gate: a low-priority person is skipped when the record already
   holds a high-priority person, even if the same (name, type) is present.
2. No record yet: create one holding just this person.
3. Unknown (name, type): append the person.
4. Known (name, type): overwrite that entry with the incoming person.

The engine never touches the store. It returns the new record state together
with a ``Mutation`` describing the single store call that persists it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..models import Person, PhoneRecord
from .priority import PriorityPolicy


class MergeAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


class MutationKind(str, Enum):
    INSERT = "insert"
    APPEND_PERSON = "append_person"
    REPLACE_PERSON = "replace_person"


@dataclass(frozen=True)
class Mutation:
    kind: MutationKind
    key: str
    person: Person
    updated_at: datetime
    record: Optional[PhoneRecord] = None
    match_name: Optional[str] = None
    match_type: Optional[str] = None


@dataclass(frozen=True)
class MergeResult:
    action: MergeAction
    record: Optional[PhoneRecord]
    mutation: Optional[Mutation] = None
    rule: str = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MergeEngine:
    def __init__(self, policy: PriorityPolicy | None = None):
        self._policy = policy or PriorityPolicy()

    @property
    def policy(self) -> PriorityPolicy:
        return self._policy

    def merge(
        self,
        key: str,
        person: Person,
        existing: Optional[PhoneRecord],
        now: Optional[datetime] = None,
    ) -> MergeResult:
        now = now or _utcnow()

        if (
            existing is not None
            and self._policy.is_low(person.type)
            and self._policy.has_high(p.type for p in existing.persons)
        ):
            return MergeResult(action=MergeAction.SKIPPED, record=existing, rule="priority_gate")

        if existing is None:
            record = PhoneRecord(key=key, persons=[person], created_at=now, updated_at=now)
            return MergeResult(
                action=MergeAction.INSERTED,
                record=record,
                mutation=Mutation(
                    kind=MutationKind.INSERT,
                    key=key,
                    person=person,
                    updated_at=now,
                    record=record,
                ),
                rule="insert",
            )

        index = existing.find_person(person.name, person.type)
        if index is None:
            record = existing.model_copy(
                update={"persons": [*existing.persons, person], "updated_at": now}
            )
            return MergeResult(
                action=MergeAction.UPDATED,
                record=record,
                mutation=Mutation(
                    kind=MutationKind.APPEND_PERSON,
                    key=key,
                    person=person,
                    updated_at=now,
                ),
                rule="append",
            )

        persons = list(existing.persons)
        persons[index] = person
        record = existing.model_copy(update={"persons": persons, "updated_at": now})
        return MergeResult(
            action=MergeAction.UPDATED,
            record=record,
            mutation=Mutation(
                kind=MutationKind.REPLACE_PERSON,
                key=key,
                person=person,
                updated_at=now,
                match_name=person.name,
                match_type=person.type,
            ),
            rule="replace",
        )


def merge(
    key: str,
    person: Person,
    existing: Optional[PhoneRecord],
    now: Optional[datetime] = None,
    policy: Optional[PriorityPolicy] = None,
) -> MergeResult:
    """Merge with a one-off engine; see ``MergeEngine.merge``."""
    return MergeEngine(policy).merge(key, person, existing, now=now)
