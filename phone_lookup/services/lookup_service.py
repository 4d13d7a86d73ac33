"""Read-only lookup of a phone number."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..clients.store import PhoneStore
from ..utils.normalization import normalize_phone


@dataclass
class LookupResult:
    found: bool
    phone: str
    persons: List[Dict[str, Any]] = field(default_factory=list)
    updated_at: Optional[datetime] = None

    def to_response(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "found": self.found,
            "phone": self.phone,
            "persons": self.persons,
        }
        if self.found:
            payload["updatedAt"] = self.updated_at
        return payload


def find_by_key(store: PhoneStore, key: str) -> LookupResult:
    record = store.get(key)
    if record is None:
        return LookupResult(found=False, phone=key)
    return LookupResult(
        found=True,
        phone=key,
        persons=[person.to_document() for person in record.persons],
        updated_at=record.updated_at,
    )


def lookup_phone(store: PhoneStore, raw_phone: Any) -> LookupResult:
    """Normalize ``raw_phone`` and look it up. Raises InvalidPhoneError."""
    return find_by_key(store, normalize_phone(raw_phone))
