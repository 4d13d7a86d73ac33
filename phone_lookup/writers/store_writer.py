"""Persist merge mutations to a PhoneStore."""

from __future__ import annotations

from typing import Optional

from ..clients.store import PhoneStore
from ..services.merge_engine import Mutation, MutationKind


class StoreWriter:
    def __init__(self, store: PhoneStore):
        self._store = store

    def apply(self, mutation: Optional[Mutation]) -> None:
        """Issue the single store call described by ``mutation``.

        A ``None`` mutation (skipped record) writes nothing.
        """
        if mutation is None:
            return
        if mutation.kind is MutationKind.INSERT:
            self._store.insert(mutation.record)
        elif mutation.kind is MutationKind.APPEND_PERSON:
            self._store.update_append_person(mutation.key, mutation.person, mutation.updated_at)
        elif mutation.kind is MutationKind.REPLACE_PERSON:
            self._store.update_replace_person(
                mutation.key,
                mutation.match_name,
                mutation.match_type,
                mutation.person,
                mutation.updated_at,
            )
        else:
            raise ValueError(f"Unknown mutation kind: {mutation.kind}")
