"""Pydantic models for stored phone records and the persons they hold."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils.normalization import is_phone_key


class Person(BaseModel):
    """A person attached to a phone number.

    Only ``name`` and ``type`` are interpreted; any other attribute (address,
    source, ...) is carried through as-is.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str
    type: str

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.name, self.type)

    def same_entry(self, other: "Person") -> bool:
        return self.identity == other.identity

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()


class PhoneRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(alias="phone")
    persons: List[Person] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("key")
    @classmethod
    def _key_is_ten_digits(cls, value: str) -> str:
        if not is_phone_key(value):
            raise ValueError(f"phone key must be exactly 10 digits, got {value!r}")
        return value

    def find_person(self, name: str, type_: str) -> Optional[int]:
        """Return the index of the entry matching (name, type), or None."""
        for index, person in enumerate(self.persons):
            if person.name == name and person.type == type_:
                return index
        return None

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored document shape (camelCase timestamps)."""
        return {
            "phone": self.key,
            "persons": [person.to_document() for person in self.persons],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, key: str, document: Dict[str, Any]) -> "PhoneRecord":
        data = dict(document)
        data.setdefault("phone", key)
        return cls.model_validate(data)
