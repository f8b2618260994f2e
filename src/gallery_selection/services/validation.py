"""Validation of user-entered contact details."""

import re

from gallery_selection.domain.selection import ValidationResult

_EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_PHONE_SEPARATORS = re.compile(r"[\s\-.()/+]")
_PHONE_DIGITS = re.compile(r"[0-9]{10,15}")


def is_valid_email(value: str) -> bool:
    """Return whether the value looks like a single-address email."""
    return bool(_EMAIL_PATTERN.fullmatch(value.strip()))


def normalize_phone(value: str) -> str:
    """Strip common separators from a phone number."""
    return _PHONE_SEPARATORS.sub("", value.strip())


def is_valid_phone(value: str) -> bool:
    digits = normalize_phone(value)
    return bool(_PHONE_DIGITS.fullmatch(digits))


def validate_client_info(
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> ValidationResult:
    """Collect every problem with optional client contact details."""
    errors: list[str] = []
    if email and email.strip() and not is_valid_email(email):
        errors.append("Format d'email invalide")
    if phone and phone.strip() and not is_valid_phone(phone):
        errors.append("Format de téléphone invalide")
    return ValidationResult(errors=errors)
