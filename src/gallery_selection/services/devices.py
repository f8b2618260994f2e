"""Per-device service scopes.

Every browser calling the API is one device. Its identity, session,
fallback favorites and comment ownership live in its own namespace of the
local store; backend stores, the catalog and the photographer's email
settings are shared.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from gallery_selection.services.catalog import CatalogService
from gallery_selection.services.email import EmailService
from gallery_selection.services.favorites import FavoritesService
from gallery_selection.services.identity import IdentityService, generate_id
from gallery_selection.services.local_store import LocalStore, NamespacedLocalStore
from gallery_selection.services.selection import SelectionService
from gallery_selection.services.stores import BlobStore, RecordStore

DEVICE_ID_PATTERN = re.compile(r"device_\d{1,16}_[a-z0-9]{13}")

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class DeviceServices:
    """Services bound to one calling device."""

    identity: IdentityService
    favorites: FavoritesService
    selection: SelectionService

    @property
    def device_id(self) -> str:
        return self.identity.get_or_create_device_id()


@dataclass
class DeviceRegistry:
    """Builds and caches the services of each device seen by the API."""

    record_store: RecordStore
    blob_store: BlobStore
    local_store: LocalStore
    catalog: CatalogService
    email_service: EmailService
    photos_bucket: str = "photos"
    selections_prefix: str = "selections"
    public_base_url: str = "http://localhost:5173"
    clock: Callable[[], datetime] = field(default=_utcnow)
    _devices: dict[str, DeviceServices] = field(default_factory=dict, init=False)

    def for_device(self, device_id: str | None) -> DeviceServices:
        """Return the services of a known device, or of a newly issued one."""
        if not device_id or not DEVICE_ID_PATTERN.fullmatch(device_id):
            device_id = generate_id("device", self.clock())
            _logger.info("Issued device id %s", device_id)
        services = self._devices.get(device_id)
        if services is None:
            services = self._build(device_id)
            self._devices[device_id] = services
        return services

    def _build(self, device_id: str) -> DeviceServices:
        store = NamespacedLocalStore(self.local_store, device_id)
        identity = IdentityService(store, clock=self.clock, device_id=device_id)
        favorites = FavoritesService(
            record_store=self.record_store,
            local_store=store,
            identity=identity,
            clock=self.clock,
        )
        selection = SelectionService(
            favorites_service=favorites,
            identity=identity,
            catalog=self.catalog,
            blob_store=self.blob_store,
            email_service=self.email_service,
            photos_bucket=self.photos_bucket,
            selections_prefix=self.selections_prefix,
            public_base_url=self.public_base_url,
            clock=self.clock,
        )
        return DeviceServices(
            identity=identity, favorites=favorites, selection=selection
        )
