"""Tests for per-device service scopes."""

import re

from gallery_selection.services.devices import DeviceRegistry
from gallery_selection.services.identity import DEVICE_ID_KEY
from gallery_selection.services.local_store import InMemoryLocalStore
from tests.conftest import InMemoryRecordStore


def test_unknown_or_forged_ids_get_a_new_device(devices: DeviceRegistry) -> None:
    issued = devices.for_device(None)
    forged = devices.for_device("../../etc")

    assert re.fullmatch(r"device_\d+_[a-z0-9]{13}", issued.device_id)
    assert forged.device_id != "../../etc"
    assert forged.device_id != issued.device_id


def test_known_device_is_reused(devices: DeviceRegistry) -> None:
    device = devices.for_device(None)
    device.identity.create_session("Alice")

    again = devices.for_device(device.device_id)

    assert again is device
    assert again.identity.get_current_user_name() == "Alice"


def test_devices_do_not_share_sessions_or_local_data(
    devices: DeviceRegistry,
    local_store: InMemoryLocalStore,
    record_store: InMemoryRecordStore,
) -> None:
    record_store.ready = False
    alice = devices.for_device(None)
    bob = devices.for_device(None)

    alice.identity.create_session("Alice")
    alice.favorites.add_to_favorites("g1", "p1")

    assert bob.identity.get_current_session() is None
    assert bob.favorites.get_favorites("g1") == []
    assert [fav.photo_id for fav in alice.favorites.get_favorites("g1")] == ["p1"]
    assert local_store.get(DEVICE_ID_KEY) is None


def test_session_survives_a_restart(
    devices: DeviceRegistry, local_store: InMemoryLocalStore
) -> None:
    device = devices.for_device(None)
    device.identity.create_session("Alice")

    restarted = DeviceRegistry(
        record_store=devices.record_store,
        blob_store=devices.blob_store,
        local_store=local_store,
        catalog=devices.catalog,
        email_service=devices.email_service,
    )

    restored = restarted.for_device(device.device_id)
    assert restored.identity.get_current_user_name() == "Alice"
