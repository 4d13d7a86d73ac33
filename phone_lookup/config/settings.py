"""Runtime configuration models for the phone directory service."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from ..services.priority import DEFAULT_PRIORITIES, PersonPriority


class FirestoreConfig(BaseModel):
    phones_collection: str = "phones"
    project_id: Optional[str] = None


class RetryConfig(BaseModel):
    max_attempts: int = 3
    max_delay_seconds: float = 30.0
    min_wait_seconds: float = 1.0
    max_wait_seconds: float = 10.0


class UploadConfig(BaseModel):
    password_env: str = "UPLOAD_PASSWORD"


class RuntimeConfig(BaseModel):
    metadata: dict = Field(default_factory=dict)
    firestore: FirestoreConfig = Field(default_factory=FirestoreConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    priority_policy: Dict[str, PersonPriority] = Field(
        default_factory=lambda: dict(DEFAULT_PRIORITIES)
    )
