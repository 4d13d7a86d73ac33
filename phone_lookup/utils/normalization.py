"""Phone normalization helpers."""

import re

from .errors import InvalidPhoneError

KEY_LENGTH = 10

_NON_DIGITS = re.compile(r"[^0-9]")


def normalize_phone(value) -> str:
    """Return the 10-digit directory key for a raw phone value.

    Non-digits are stripped and only the last 10 digits are kept, so a
    leading country code is dropped by truncation. Raises InvalidPhoneError
    when fewer than 10 digits remain, or when the value is neither a string
    nor an integer.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidPhoneError(value)
    digits = _NON_DIGITS.sub("", str(value))
    key = digits[-KEY_LENGTH:]
    if len(key) != KEY_LENGTH:
        raise InvalidPhoneError(value)
    return key


def is_phone_key(value: str) -> bool:
    return isinstance(value, str) and len(value) == KEY_LENGTH and value.isascii() and value.isdigit()
