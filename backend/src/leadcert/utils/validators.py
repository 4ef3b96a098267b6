"""Input validation utilities."""

from __future__ import annotations

import re

from leadcert.exceptions import ValidationError

ACCOUNT_NUMBER_MIN_DIGITS = 8
ACCOUNT_NUMBER_MAX_DIGITS = 10
INVALID_ACCOUNT_MESSAGE = (
    f"Please enter a valid OPA number "
    f"({ACCOUNT_NUMBER_MIN_DIGITS}-{ACCOUNT_NUMBER_MAX_DIGITS} digits)."
)

_NON_DIGITS = re.compile(r"[^0-9]")


def sanitize_account_number(value: str | None) -> str:
    """Strip every character that is not an ASCII digit.

    Args:
        value: The raw account number as typed by the user.

    Returns:
        The digit-only string, empty when nothing remains.
    """
    if not value:
        return ""
    return _NON_DIGITS.sub("", value)


def is_valid_account_number(value: str | None) -> bool:
    digits = sanitize_account_number(value)
    return ACCOUNT_NUMBER_MIN_DIGITS <= len(digits) <= ACCOUNT_NUMBER_MAX_DIGITS


def validate_account_number(value: str | None) -> str:
    """Validate an OPA account number and return its digits.

    Args:
        value: The raw account number, e.g. ``"0811-287-00"``.

    Returns:
        The cleaned digit string.

    Raises:
        ValidationError: If fewer than 8 or more than 10 digits remain.
    """
    digits = sanitize_account_number(value)
    if not ACCOUNT_NUMBER_MIN_DIGITS <= len(digits) <= ACCOUNT_NUMBER_MAX_DIGITS:
        raise ValidationError(INVALID_ACCOUNT_MESSAGE, field="opa")
    return digits

