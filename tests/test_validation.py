"""Tests for client contact validation."""

import pytest

from gallery_selection.services.validation import (
    is_valid_email,
    is_valid_phone,
    normalize_phone,
    validate_client_info,
)


def test_validate_client_info_collects_errors() -> None:
    result = validate_client_info("Jean", "not-an-email", "123")

    assert result.errors == [
        "Format d'email invalide",
        "Format de téléphone invalide",
    ]


def test_all_fields_optional() -> None:
    assert validate_client_info().errors == []
    assert validate_client_info("", "  ", "").is_valid


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("jean@example.fr", True),
        (" jean.martin@studio.example.com ", True),
        ("jean@example", False),
        ("jean@@example.fr", False),
        ("jean martin@example.fr", False),
    ],
)
def test_is_valid_email(value: str, expected: bool) -> None:
    assert is_valid_email(value) is expected


def test_phone_normalization() -> None:
    assert normalize_phone("+33 (0)6.12-34/56 78") == "330612345678"
    assert is_valid_phone("06 12 34 56 78")
    assert not is_valid_phone("123456789")
    assert not is_valid_phone("1234567890123456")
    assert not is_valid_phone("06 12 34 56 7x")
    assert not is_valid_phone("06 12 34 56 7²")
    assert not is_valid_phone("٠٦١٢٣٤٥٦٧٨")
