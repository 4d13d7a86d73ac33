"""Firestore-backed PhoneStore. One document per phone key."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Callable, Optional

from google.api_core import exceptions as gcp_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import firestore
from google.oauth2 import service_account
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from ..config.settings import FirestoreConfig, RetryConfig
from ..models import Person, PhoneRecord
from ..utils.errors import DuplicateKeyError, StoreUnavailableError
from .logging import log_store_retry

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    gcp_exceptions.ServiceUnavailable,
    gcp_exceptions.DeadlineExceeded,
    gcp_exceptions.InternalServerError,
    gcp_exceptions.ResourceExhausted,
    gcp_exceptions.Aborted,
)


class FirestorePhoneStore:
    """Firestore store for phone records.

    The hosting service opens the store on startup and closes it on shutdown.
    A pre-built ``firestore.Client`` may be injected instead.
    """

    def __init__(
        self,
        config: FirestoreConfig,
        retry_config: RetryConfig | None = None,
        client: Optional[firestore.Client] = None,
    ):
        self._config = config
        self._retry_config = retry_config or RetryConfig()
        self._client: firestore.Client | None = client

    def open(self) -> "FirestorePhoneStore":
        if self._client is not None:
            return self
        cred_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        try:
            if cred_path and os.path.exists(cred_path):
                credentials = service_account.Credentials.from_service_account_file(cred_path)
                self._client = firestore.Client(
                    credentials=credentials,
                    project=self._config.project_id or credentials.project_id,
                )
                logger.info(f"Firestore client initialized with credentials from {cred_path}")
            else:
                if cred_path:
                    logger.warning(
                        f"Service account file not found at {cred_path}. "
                        "Falling back to Application Default Credentials (ADC)."
                    )
                self._client = firestore.Client(project=self._config.project_id)
                logger.info("Firestore client initialized with Application Default Credentials")
        except DefaultCredentialsError as exc:
            raise StoreUnavailableError(
                "open",
                "Firestore credentials not configured. Set GOOGLE_APPLICATION_CREDENTIALS "
                "or run 'gcloud auth application-default login'.",
            ) from exc
        return self

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Firestore client closed")

    def _collection(self) -> Any:
        if self._client is None:
            raise StoreUnavailableError("connect", "Firestore store is not open")
        return self._client.collection(self._config.phones_collection)

    def _call(self, operation: str, fn: Callable[..., Any], *args: Any, phone: str | None = None) -> Any:
        """Run ``fn`` with retries on transient Firestore errors."""
        cfg = self._retry_config
        retrying = Retrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=(stop_after_attempt(cfg.max_attempts) | stop_after_delay(cfg.max_delay_seconds)),
            wait=wait_exponential(multiplier=1, min=cfg.min_wait_seconds, max=cfg.max_wait_seconds),
            before_sleep=lambda state: log_store_retry(
                logger, operation, state.attempt_number, str(state.outcome.exception())
            ),
            reraise=True,
        )
        try:
            return retrying(fn, *args)
        except TRANSIENT_ERRORS as exc:
            logger.error(
                f"Store {operation} failed after retries",
                extra={"phone": phone, "error": str(exc)},
                exc_info=True,
            )
            raise StoreUnavailableError(operation, str(exc), phone=phone) from exc

    def get(self, key: str) -> Optional[PhoneRecord]:
        def _get() -> Optional[PhoneRecord]:
            snapshot = self._collection().document(key).get()
            if not snapshot.exists:
                return None
            return PhoneRecord.from_document(key, snapshot.to_dict() or {})

        return self._call("get", _get, phone=key)

    def insert(self, record: PhoneRecord) -> None:
        document = record.to_document()
        attempts = 0

        def _insert() -> None:
            nonlocal attempts
            attempts += 1
            doc_ref = self._collection().document(record.key)
            try:
                doc_ref.create(document)
            except gcp_exceptions.AlreadyExists as exc:
                # A timed-out create may have committed before the retry.
                if attempts > 1:
                    snapshot = doc_ref.get()
                    if snapshot.exists and PhoneRecord.from_document(record.key, snapshot.to_dict() or {}) == record:
                        logger.info("Insert committed on an earlier attempt", extra={"phone": record.key})
                        return
                raise DuplicateKeyError(record.key) from exc

        self._call("insert", _insert, phone=record.key)

    def update_append_person(self, key: str, person: Person, updated_at: datetime) -> None:
        def _append() -> None:
            try:
                self._collection().document(key).update(
                    {
                        "persons": firestore.ArrayUnion([person.to_document()]),
                        "updatedAt": updated_at,
                    }
                )
            except gcp_exceptions.NotFound:
                logger.warning("Append skipped, phone record missing", extra={"phone": key})

        self._call("append_person", _append, phone=key)

    def update_replace_person(
        self,
        key: str,
        match_name: str,
        match_type: str,
        new_person: Person,
        updated_at: datetime,
    ) -> None:
        @firestore.transactional
        def _replace_in_transaction(transaction, doc_ref) -> bool:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                return False
            persons = list((snapshot.to_dict() or {}).get("persons") or [])
            for index, entry in enumerate(persons):
                if entry.get("name") == match_name and entry.get("type") == match_type:
                    persons[index] = new_person.to_document()
                    transaction.update(doc_ref, {"persons": persons, "updatedAt": updated_at})
                    return True
            return False

        def _replace() -> None:
            doc_ref = self._collection().document(key)
            replaced = _replace_in_transaction(self._client.transaction(), doc_ref)
            if not replaced:
                logger.warning(
                    "Replace skipped, no matching person",
                    extra={"phone": key, "person_name": match_name, "person_type": match_type},
                )

        self._call("replace_person", _replace, phone=key)

    def count(self) -> int:
        def _count() -> int:
            results = self._collection().count().get()
            return int(results[0][0].value) if results else 0

        return self._call("count", _count)
