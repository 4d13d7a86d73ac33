"""Record store interface consumed by the batch processor and lookups."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..models import Person, PhoneRecord


class PhoneStore(Protocol):
    """Keyed store of phone records.

    Every call commits on its own; there is no multi-record transaction.
    Implementations raise StoreUnavailableError when the backend cannot be
    reached and DuplicateKeyError when inserting an existing key.
    """

    def get(self, key: str) -> Optional[PhoneRecord]:
        ...

    def insert(self, record: PhoneRecord) -> None:
        ...

    def update_append_person(self, key: str, person: Person, updated_at: datetime) -> None:
        ...

    def update_replace_person(
        self,
        key: str,
        match_name: str,
        match_type: str,
        new_person: Person,
        updated_at: datetime,
    ) -> None:
        ...

    def count(self) -> int:
        ...

    def close(self) -> None:
        ...
