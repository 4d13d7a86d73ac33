"""Fold an upload batch through normalization, merging and the store."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from functools import reduce
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..clients.logging import get_logger, log_batch, log_record_error
from ..clients.store import PhoneStore
from ..models import Person
from ..utils.errors import MalformedRecordError, RecordError, StoreUnavailableError
from ..utils.locks import KeyedLocks
from ..utils.normalization import normalize_phone
from ..writers.store_writer import StoreWriter
from .merge_engine import MergeAction, MergeEngine

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchResult:
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    def tally(self, action: MergeAction) -> "BatchResult":
        field_name = action.value
        return replace(self, **{field_name: getattr(self, field_name) + 1})

    def with_error(self) -> "BatchResult":
        return replace(self, errors=self.errors + 1)

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def parse_upload_record(raw: Any, index: Optional[int] = None) -> Tuple[Any, Person]:
    """Split a raw upload entry into its phone value and Person.

    Accepts ``{"phone": ..., "person": {...}}`` mappings or ``(phone, person)``
    pairs. Raises MalformedRecordError when either part is missing.
    """
    if isinstance(raw, Mapping):
        phone, person_data = raw.get("phone"), raw.get("person")
    elif isinstance(raw, (tuple, list)) and len(raw) == 2:
        phone, person_data = raw
    else:
        raise MalformedRecordError("Record must be a mapping with phone and person", index=index)

    if phone is None or phone == "":
        raise MalformedRecordError("Record is missing a phone", index=index)
    if isinstance(person_data, Person):
        return phone, person_data
    if not isinstance(person_data, Mapping):
        raise MalformedRecordError("Record is missing a person", index=index)
    try:
        return phone, Person.model_validate(dict(person_data))
    except ValidationError as exc:
        raise MalformedRecordError(f"Invalid person: {exc.error_count()} error(s)", index=index) from exc


class BatchProcessor:
    """Processes upload batches strictly in submission order.

    Each record reads the store, merges, and writes before the next record is
    read, so later records for a key see the effects of earlier ones.
    """

    def __init__(
        self,
        store: PhoneStore,
        engine: MergeEngine | None = None,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._engine = engine or MergeEngine()
        self._writer = StoreWriter(store)
        self._locks = locks or KeyedLocks()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def process_batch(self, records: Sequence[Any], batch_id: str | None = None) -> BatchResult:
        batch_id = batch_id or str(uuid.uuid4())
        start = time.perf_counter()

        def step(result: BatchResult, item: Tuple[int, Any]) -> BatchResult:
            index, raw = item
            return self._process_record(result, index, raw, batch_id)

        result = reduce(step, enumerate(records), BatchResult(processed=len(records)))

        log_batch(
            logger,
            batch_id,
            counts=result.as_dict(),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        return result

    def _process_record(self, result: BatchResult, index: int, raw: Any, batch_id: str) -> BatchResult:
        key: Optional[str] = None
        try:
            phone, person = parse_upload_record(raw, index)
            key = normalize_phone(phone)
            with self._locks.hold(key):
                existing = self._store.get(key)
                outcome = self._engine.merge(key, person, existing, now=self._clock())
                self._writer.apply(outcome.mutation)
        except StoreUnavailableError:
            raise
        except RecordError as exc:
            log_record_error(logger, batch_id, index, str(exc), phone=key)
            return result.with_error()
        except Exception as exc:
            logger.error(
                "Unexpected error processing record",
                extra={"batch_id": batch_id, "index": index, "phone": key, "error": str(exc)},
                exc_info=True,
            )
            return result.with_error()

        logger.debug(
            "Record merged",
            extra={"batch_id": batch_id, "index": index, "phone": key, "action": outcome.action.value, "rule": outcome.rule},
        )
        return result.tally(outcome.action)


def process_batch(store: PhoneStore, records: Sequence[Any], engine: MergeEngine | None = None) -> BatchResult:
    """Process ``records`` against ``store`` with a fresh processor."""
    return BatchProcessor(store, engine=engine).process_batch(records)
