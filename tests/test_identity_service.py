"""Tests for device identity and display-name sessions."""

import json
import re
from pathlib import Path

import pytest

from gallery_selection.domain.errors import InvalidNameError
from gallery_selection.services.identity import (
    DEVICE_ID_KEY,
    USER_SESSION_KEY,
    IdentityService,
    validate_user_name,
)
from gallery_selection.services.local_store import (
    InMemoryLocalStore,
    JsonFileLocalStore,
)
from tests.conftest import FixedClock


class _ReadOnlyStore(InMemoryLocalStore):
    def set(self, key: str, value: str) -> None:
        raise OSError("read-only")


def test_device_id_is_generated_once_and_persisted(clock: FixedClock) -> None:
    store = InMemoryLocalStore()
    service = IdentityService(store, clock=clock)

    device_id = service.get_or_create_device_id()

    assert re.fullmatch(r"device_\d+_[a-z0-9]{13}", device_id)
    assert service.get_or_create_device_id() == device_id
    assert store.get(DEVICE_ID_KEY) == device_id
    assert IdentityService(store, clock=clock).get_or_create_device_id() == device_id


def test_device_id_survives_unavailable_persistence(clock: FixedClock) -> None:
    service = IdentityService(_ReadOnlyStore(), clock=clock)

    device_id = service.get_or_create_device_id()

    assert device_id.startswith("device_")
    assert service.get_or_create_device_id() == device_id


def test_unreadable_store_falls_back_to_memory(
    tmp_path: Path, clock: FixedClock
) -> None:
    service = IdentityService(JsonFileLocalStore(tmp_path), clock=clock)

    device_id = service.get_or_create_device_id()
    session = service.create_session("Alice")

    assert device_id.startswith("device_")
    assert service.get_or_create_device_id() == device_id
    assert session.device_id == device_id
    assert service.get_current_session() == session


@pytest.mark.parametrize("name", ["Jo", "a" * 50, "Jean-Paul O'Brien", "Élodie 2"])
def test_valid_names_are_accepted(name: str) -> None:
    assert validate_user_name(name) is None


@pytest.mark.parametrize(
    "name", ["", "   ", "J", "a" * 51, "Jean_Paul", "Jean<script>"]
)
def test_invalid_names_are_rejected(name: str) -> None:
    assert validate_user_name(name) is not None


def test_create_session_persists_trimmed_name(
    identity_service: IdentityService, local_store: InMemoryLocalStore
) -> None:
    session = identity_service.create_session("  Alice  ")

    assert session.user_name == "Alice"
    assert session.user_id.startswith("user_")
    assert session.device_id == identity_service.get_or_create_device_id()
    assert identity_service.is_logged_in()
    stored = json.loads(local_store.get(USER_SESSION_KEY) or "{}")
    assert stored["userName"] == "Alice"
    assert stored["userId"] == session.user_id


def test_create_session_rejects_invalid_name(identity_service: IdentityService) -> None:
    with pytest.raises(InvalidNameError) as excinfo:
        identity_service.create_session("Jean_Paul")

    assert "caractères" in excinfo.value.reason
    assert not identity_service.is_logged_in()


def test_session_is_restored_from_local_store(
    local_store: InMemoryLocalStore, clock: FixedClock
) -> None:
    first = IdentityService(local_store, clock=clock)
    session = first.create_session("Bob")

    restored = IdentityService(local_store, clock=clock)

    assert restored.get_current_session() == session
    assert restored.get_current_user_name() == "Bob"
    assert restored.get_current_user_id() == session.user_id


def test_malformed_session_is_ignored(clock: FixedClock) -> None:
    store = InMemoryLocalStore({USER_SESSION_KEY: json.dumps({"userName": "x"})})

    assert IdentityService(store, clock=clock).get_current_session() is None


def test_update_user_name_keeps_user_id(identity_service: IdentityService) -> None:
    session = identity_service.create_session("Alice")

    assert identity_service.update_user_name("Alicia")

    current = identity_service.get_current_session()
    assert current is not None
    assert current.user_name == "Alicia"
    assert current.user_id == session.user_id


def test_update_user_name_without_session(identity_service: IdentityService) -> None:
    assert identity_service.update_user_name("Alice") is False


def test_clear_session_logs_out(
    identity_service: IdentityService, local_store: InMemoryLocalStore
) -> None:
    identity_service.create_session("Alice")

    identity_service.clear_session()

    assert not identity_service.is_logged_in()
    assert local_store.get(USER_SESSION_KEY) is None
    assert identity_service.current_principal().user_id is None


def test_current_principal_carries_session(identity_service: IdentityService) -> None:
    session = identity_service.create_session("Alice")

    principal = identity_service.current_principal()

    assert principal.device_id == session.device_id
    assert principal.user_id == session.user_id
    assert principal.user_name == "Alice"


def test_user_stats_counts_days(
    identity_service: IdentityService, clock: FixedClock
) -> None:
    assert identity_service.get_user_stats().is_logged_in is False

    identity_service.create_session("Alice")
    clock.advance(3 * 24 * 3600 + 60)
    stats = identity_service.get_user_stats()

    assert stats.is_logged_in
    assert stats.user_name == "Alice"
    assert stats.days_since_creation == 3
