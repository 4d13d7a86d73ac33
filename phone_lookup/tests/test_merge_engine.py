"""Unit tests for the merge rules."""

from datetime import datetime, timedelta, timezone

import pytest

from phone_lookup.models import Person, PhoneRecord
from phone_lookup.services.merge_engine import MergeAction, MergeEngine, MutationKind, merge
from phone_lookup.services.priority import PersonPriority, PriorityPolicy

KEY = "5551234567"
CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOW = CREATED + timedelta(days=30)


def _record(*persons: Person) -> PhoneRecord:
    return PhoneRecord(key=KEY, persons=list(persons), created_at=CREATED, updated_at=CREATED)


def test_fresh_insert():
    result = merge(KEY, Person(name="A", type="DEBTOR"), None, now=NOW)

    assert result.action is MergeAction.INSERTED
    assert [p.identity for p in result.record.persons] == [("A", "DEBTOR")]
    assert result.record.created_at == NOW
    assert result.record.updated_at == NOW
    assert result.mutation.kind is MutationKind.INSERT
    assert result.mutation.record == result.record


def test_append_distinct_person_preserves_order():
    existing = _record(Person(name="A", type="DEBTOR"))

    result = merge(KEY, Person(name="B", type="RELATIVE"), existing, now=NOW)

    assert result.action is MergeAction.UPDATED
    assert [p.identity for p in result.record.persons] == [("A", "DEBTOR"), ("B", "RELATIVE")]
    assert result.record.created_at == CREATED
    assert result.record.updated_at == NOW
    assert result.mutation.kind is MutationKind.APPEND_PERSON
    # input record untouched
    assert len(existing.persons) == 1


def test_identity_overwrite_replaces_extra_fields():
    existing = _record(Person(name="A", type="DEBTOR", addr="X"))

    result = merge(KEY, Person(name="A", type="DEBTOR", addr="Y"), existing, now=NOW)

    assert result.action is MergeAction.UPDATED
    assert len(result.record.persons) == 1
    assert result.record.persons[0].to_document() == {"name": "A", "type": "DEBTOR", "addr": "Y"}
    assert result.mutation.kind is MutationKind.REPLACE_PERSON
    assert (result.mutation.match_name, result.mutation.match_type) == ("A", "DEBTOR")


def test_identity_overwrite_drops_fields_missing_from_incoming():
    existing = _record(Person(name="A", type="DEBTOR", addr="X", source="county"))

    result = merge(KEY, Person(name="A", type="DEBTOR", addr="Y"), existing, now=NOW)

    assert result.record.persons[0].to_document() == {"name": "A", "type": "DEBTOR", "addr": "Y"}


def test_identity_is_case_sensitive():
    existing = _record(Person(name="A", type="DEBTOR"))

    result = merge(KEY, Person(name="a", type="DEBTOR"), existing, now=NOW)

    assert result.mutation.kind is MutationKind.APPEND_PERSON
    assert len(result.record.persons) == 2


def test_same_name_different_type_is_new_entry():
    existing = _record(Person(name="A", type="RELATIVE"))

    result = merge(KEY, Person(name="A", type="DEBTOR"), existing, now=NOW)

    assert result.mutation.kind is MutationKind.APPEND_PERSON


@pytest.mark.parametrize("high_type", ["DEBTOR", "RELATIVE"])
def test_priority_skip(high_type):
    existing = _record(Person(name="A", type=high_type))

    result = merge(KEY, Person(name="Z", type="POSS POE"), existing, now=NOW)

    assert result.action is MergeAction.SKIPPED
    assert result.mutation is None
    assert result.record is existing
    assert [p.name for p in result.record.persons] == ["A"]


def test_priority_gate_fires_before_identity_match():
    existing = _record(Person(name="Z", type="POSS POE", addr="old"), Person(name="A", type="DEBTOR"))

    result = merge(KEY, Person(name="Z", type="POSS POE", addr="new"), existing, now=NOW)

    assert result.action is MergeAction.SKIPPED
    assert result.record.persons[0].to_document()["addr"] == "old"


def test_priority_gate_does_not_block_other_types():
    existing = _record(Person(name="A", type="DEBTOR"))

    result = merge(KEY, Person(name="Z", type="RELATIVE"), existing, now=NOW)

    assert result.action is MergeAction.UPDATED


def test_low_priority_added_when_no_high_priority_present():
    existing = _record(Person(name="Y", type="POSS POE"), Person(name="E", type="EMPLOYER"))

    result = merge(KEY, Person(name="Z", type="POSS POE"), existing, now=NOW)

    assert result.action is MergeAction.UPDATED
    assert [p.name for p in result.record.persons] == ["Y", "E", "Z"]


def test_low_priority_inserted_into_empty_key():
    result = merge(KEY, Person(name="Z", type="POSS POE"), None, now=NOW)

    assert result.action is MergeAction.INSERTED


def test_custom_policy_table():
    policy = PriorityPolicy({"EMPLOYER": PersonPriority.HIGH, "NEIGHBOR": PersonPriority.LOW})
    engine = MergeEngine(policy)
    existing = _record(Person(name="E", type="EMPLOYER"))

    assert engine.merge(KEY, Person(name="N", type="NEIGHBOR"), existing, now=NOW).action is MergeAction.SKIPPED
    # POSS POE is neutral under this table
    assert engine.merge(KEY, Person(name="P", type="POSS POE"), existing, now=NOW).action is MergeAction.UPDATED


def test_default_policy_classes():
    policy = PriorityPolicy()
    assert policy.types_in(PersonPriority.HIGH) == ["DEBTOR", "RELATIVE"]
    assert policy.types_in(PersonPriority.LOW) == ["POSS POE"]
    assert policy.priority_of("EMPLOYER") is PersonPriority.NEUTRAL


def test_policy_accepts_string_classes():
    policy = PriorityPolicy({"DEBTOR": "high", "POSS POE": "low"})
    assert policy.is_high("DEBTOR")
    assert policy.is_low("POSS POE")
