"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from gallery_selection.adapters.email_transport import EmailTransport
from gallery_selection.config import Settings
from gallery_selection.containers import AppContainer
from gallery_selection.domain.catalog import BlobEntry
from gallery_selection.domain.email import EmailMessage, EmailSendResult
from gallery_selection.domain.results import (
    Ok,
    StoreResult,
    TransportError,
    TransportErrorKind,
)
from gallery_selection.services.catalog import CatalogService
from gallery_selection.services.devices import DeviceRegistry
from gallery_selection.services.email import EmailService
from gallery_selection.services.favorites import FavoritesService
from gallery_selection.services.identity import IdentityService
from gallery_selection.services.local_store import InMemoryLocalStore
from gallery_selection.services.selection import SelectionService
from gallery_selection.services.stores import BlobStore, Filters, RecordStore, Row

BASE_TIME = datetime(2024, 5, 17, 14, 30, tzinfo=UTC)
CDN_URL = "https://cdn.example.test"


@dataclass
class FixedClock:
    """Clock returning a controllable instant."""

    now: datetime = BASE_TIME

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def _unreachable(table: str) -> TransportError:
    return TransportError(TransportErrorKind.UNREACHABLE, f"{table} unreachable")


@dataclass
class InMemoryRecordStore(RecordStore):
    """In-memory record store with switchable failures."""

    tables: dict[str, list[Row]] = field(default_factory=dict)
    ready: bool = True
    fail_all: bool = False
    fail_tables: set[str] = field(default_factory=set)
    inserts: list[tuple[str, Row]] = field(default_factory=list)
    _counter: int = 0

    def is_ready(self) -> bool:
        return self.ready

    def select(
        self,
        table: str,
        filters: Filters,
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> StoreResult[list[Row]]:
        if self._failing(table):
            return _unreachable(table)
        rows = [
            dict(row) for row in self.tables.get(table, []) if _matches(row, filters)
        ]
        if order_by:
            rows.sort(key=lambda row: str(row.get(order_by) or ""), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return Ok(rows)

    def insert(self, table: str, row: Row) -> StoreResult[Row]:
        if self._failing(table):
            return _unreachable(table)
        self._counter += 1
        timestamp = (BASE_TIME + timedelta(seconds=self._counter)).isoformat()
        stored = {
            "id": f"{table}-{self._counter}",
            "created_at": timestamp,
            "updated_at": timestamp,
            **row,
        }
        self.tables.setdefault(table, []).append(stored)
        self.inserts.append((table, dict(row)))
        return Ok(dict(stored))

    def update(
        self, table: str, values: Row, filters: Filters
    ) -> StoreResult[list[Row]]:
        if self._failing(table):
            return _unreachable(table)
        updated = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return Ok(updated)

    def delete(self, table: str, filters: Filters) -> StoreResult[list[Row]]:
        if self._failing(table):
            return _unreachable(table)
        rows = self.tables.get(table, [])
        deleted = [row for row in rows if _matches(row, filters)]
        self.tables[table] = [row for row in rows if not _matches(row, filters)]
        return Ok(deleted)

    def rows(self, table: str) -> list[Row]:
        return list(self.tables.get(table, []))

    def _failing(self, table: str) -> bool:
        return self.fail_all or table in self.fail_tables


def _matches(row: Row, filters: Filters) -> bool:
    return all(row.get(column) == value for column, value in filters.items())


@dataclass
class InMemoryBlobStore(BlobStore):
    """In-memory blob store with a switchable upload failure."""

    objects: dict[tuple[str, str], bytes] = field(default_factory=dict)
    content_types: dict[tuple[str, str], str] = field(default_factory=dict)
    created: dict[tuple[str, str], datetime] = field(default_factory=dict)
    base_url: str = CDN_URL
    fail_uploads: bool = False
    fail_lists: bool = False

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StoreResult[str]:
        if self.fail_uploads:
            return TransportError(TransportErrorKind.REJECTED, "upload rejected")
        key = (bucket, path)
        if key in self.objects and not upsert:
            return TransportError(TransportErrorKind.REJECTED, "object exists")
        self.objects[key] = data
        self.content_types[key] = content_type
        self.created[key] = BASE_TIME + timedelta(minutes=len(self.objects))
        return Ok(path)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{path}"

    def list(self, bucket: str, prefix: str) -> StoreResult[list[BlobEntry]]:
        if self.fail_lists:
            return TransportError(TransportErrorKind.UNREACHABLE, "list failed")
        folder = prefix.rstrip("/") + "/"
        entries = []
        for (stored_bucket, path), data in self.objects.items():
            if stored_bucket != bucket or not path.startswith(folder):
                continue
            name = path[len(folder) :]
            if "/" in name:
                continue
            entries.append(
                BlobEntry(
                    name=name,
                    created_at=self.created[(stored_bucket, path)],
                    size=len(data),
                    mime_type=self.content_types[(stored_bucket, path)],
                )
            )
        return Ok(entries)

    def delete(self, bucket: str, path: str) -> StoreResult[bool]:
        return Ok(self.objects.pop((bucket, path), None) is not None)


@dataclass
class FakeEmailTransport(EmailTransport):
    """Email transport that records messages."""

    sent: list[EmailMessage] = field(default_factory=list)
    result: EmailSendResult = field(
        default_factory=lambda: EmailSendResult(message_id="msg-1")
    )

    async def send_email(self, message: EmailMessage) -> EmailSendResult:
        self.sent.append(message)
        return self.result

    async def close(self) -> None:
        return None


@dataclass
class Device:
    """One simulated browser: its own local store and identity."""

    local_store: InMemoryLocalStore
    identity: IdentityService
    favorites: FavoritesService


def build_device(record_store: RecordStore, clock: FixedClock) -> Device:
    local_store = InMemoryLocalStore()
    identity = IdentityService(local_store, clock=clock)
    favorites = FavoritesService(
        record_store=record_store,
        local_store=local_store,
        identity=identity,
        clock=clock,
    )
    return Device(local_store=local_store, identity=identity, favorites=favorites)


def seed_gallery(
    record_store: InMemoryRecordStore,
    gallery_id: str = "g1",
    name: str = "Mariage Dupont",
    photo_ids: tuple[str, ...] = ("p1", "p2", "p3"),
) -> None:
    record_store.tables.setdefault("galleries", []).append(
        {"id": gallery_id, "name": name, "created_at": BASE_TIME.isoformat()}
    )
    for index, photo_id in enumerate(photo_ids, start=1):
        record_store.tables.setdefault("photos", []).append(
            {
                "id": photo_id,
                "gallery_id": gallery_id,
                "name": f"IMG_{index:04d}.jpg",
                "original_name": f"DSC_{index:04d}.NEF",
                "url": f"{CDN_URL}/photos/{gallery_id}/IMG_{index:04d}.jpg",
                "created_at": (BASE_TIME + timedelta(seconds=index)).isoformat(),
            }
        )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        admin_token="admin-token",
        local_store_path=str(tmp_path / "local.json"),
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def local_store() -> InMemoryLocalStore:
    return InMemoryLocalStore()


@pytest.fixture
def email_transport() -> FakeEmailTransport:
    return FakeEmailTransport()


@pytest.fixture
def identity_service(
    local_store: InMemoryLocalStore, clock: FixedClock
) -> IdentityService:
    return IdentityService(local_store, clock=clock)


@pytest.fixture
def favorites_service(
    record_store: InMemoryRecordStore,
    local_store: InMemoryLocalStore,
    identity_service: IdentityService,
    clock: FixedClock,
) -> FavoritesService:
    return FavoritesService(
        record_store=record_store,
        local_store=local_store,
        identity=identity_service,
        clock=clock,
    )


@pytest.fixture
def catalog_service(
    record_store: InMemoryRecordStore, blob_store: InMemoryBlobStore, clock: FixedClock
) -> CatalogService:
    return CatalogService(record_store=record_store, blob_store=blob_store, clock=clock)


@pytest.fixture
def email_service(
    local_store: InMemoryLocalStore, email_transport: FakeEmailTransport
) -> EmailService:
    return EmailService(
        local_store=local_store,
        transport=email_transport,
        from_address="galerie@example.test",
    )


@pytest.fixture
def selection_service(
    favorites_service: FavoritesService,
    identity_service: IdentityService,
    catalog_service: CatalogService,
    blob_store: InMemoryBlobStore,
    email_service: EmailService,
    clock: FixedClock,
) -> SelectionService:
    return SelectionService(
        favorites_service=favorites_service,
        identity=identity_service,
        catalog=catalog_service,
        blob_store=blob_store,
        email_service=email_service,
        public_base_url="https://galerie.example.test",
        clock=clock,
    )


@pytest.fixture
def devices(
    record_store: InMemoryRecordStore,
    blob_store: InMemoryBlobStore,
    local_store: InMemoryLocalStore,
    catalog_service: CatalogService,
    email_service: EmailService,
    clock: FixedClock,
) -> DeviceRegistry:
    return DeviceRegistry(
        record_store=record_store,
        blob_store=blob_store,
        local_store=local_store,
        catalog=catalog_service,
        email_service=email_service,
        public_base_url="https://galerie.example.test",
        clock=clock,
    )


@pytest.fixture
def container(
    settings: Settings,
    identity_service: IdentityService,
    favorites_service: FavoritesService,
    catalog_service: CatalogService,
    email_service: EmailService,
    selection_service: SelectionService,
    devices: DeviceRegistry,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        identity_service=identity_service,
        favorites_service=favorites_service,
        catalog_service=catalog_service,
        email_service=email_service,
        selection_service=selection_service,
        devices=devices,
        close_resources=close_resources,
    )
