"""Shared-secret gate for upload requests."""

from __future__ import annotations

import logging
import os
import secrets
from typing import Optional

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class AuthenticationError(HTTPException):
    """Custom exception for authentication failures."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def verify_upload_password(password: Optional[str], env_var: str = "UPLOAD_PASSWORD") -> None:
    """Check an upload password against the configured shared secret.

    Raises:
        AuthenticationError: If the password is missing or wrong
        HTTPException: 500 if no password is configured on the server
    """
    expected = os.getenv(env_var)

    if not expected:
        logger.error(f"{env_var} environment variable not set")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server authentication not configured",
        )

    if not password or not secrets.compare_digest(password.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Invalid upload password attempt")
        raise AuthenticationError("Invalid password")
