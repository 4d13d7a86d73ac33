"""In-memory PhoneStore used for tests and local runs."""

from __future__ import annotations

import copy
import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from ..models import Person, PhoneRecord
from ..utils.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class InMemoryPhoneStore:
    """Stores phone documents in a dict keyed by phone. Insertion order preserved."""

    def __init__(self) -> None:
        self._documents: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[PhoneRecord]:
        with self._lock:
            document = self._documents.get(key)
            if document is None:
                return None
            return PhoneRecord.from_document(key, copy.deepcopy(document))

    def insert(self, record: PhoneRecord) -> None:
        with self._lock:
            if record.key in self._documents:
                raise DuplicateKeyError(record.key)
            self._documents[record.key] = copy.deepcopy(record.to_document())

    def update_append_person(self, key: str, person: Person, updated_at: datetime) -> None:
        with self._lock:
            document = self._documents.get(key)
            if document is None:
                logger.warning("Append skipped, phone record missing", extra={"phone": key})
                return
            document["persons"] = [*document["persons"], copy.deepcopy(person.to_document())]
            document["updatedAt"] = updated_at

    def update_replace_person(
        self,
        key: str,
        match_name: str,
        match_type: str,
        new_person: Person,
        updated_at: datetime,
    ) -> None:
        with self._lock:
            document = self._documents.get(key)
            if document is None:
                logger.warning("Replace skipped, phone record missing", extra={"phone": key})
                return
            persons = list(document["persons"])
            for index, entry in enumerate(persons):
                if entry.get("name") == match_name and entry.get("type") == match_type:
                    persons[index] = copy.deepcopy(new_person.to_document())
                    document["persons"] = persons
                    document["updatedAt"] = updated_at
                    return
            logger.warning(
                "Replace skipped, no matching person",
                extra={"phone": key, "person_name": match_name, "person_type": match_type},
            )

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def close(self) -> None:
        pass

    def documents(self) -> Dict[str, dict]:
        """Snapshot of the raw stored documents."""
        with self._lock:
            return copy.deepcopy(self._documents)
