"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from supabase import Client, create_client

from gallery_selection.adapters.email_transport import (
    DisabledEmailTransport,
    HttpxEmailTransport,
)
from gallery_selection.adapters.supabase_blob_store import SupabaseBlobStore
from gallery_selection.adapters.supabase_record_store import SupabaseRecordStore
from gallery_selection.config import Settings, is_backend_configured
from gallery_selection.services.catalog import CatalogService
from gallery_selection.services.devices import DeviceRegistry
from gallery_selection.services.email import EmailService
from gallery_selection.services.favorites import FavoritesService
from gallery_selection.services.identity import IdentityService
from gallery_selection.services.local_store import JsonFileLocalStore
from gallery_selection.services.selection import SelectionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_service: IdentityService
    favorites_service: FavoritesService
    catalog_service: CatalogService
    email_service: EmailService
    selection_service: SelectionService
    devices: DeviceRegistry
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client: Client | None = None
    if is_backend_configured(resolved_settings):
        supabase_client = create_client(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
    record_store = SupabaseRecordStore(supabase_client)
    blob_store = SupabaseBlobStore(supabase_client)
    local_store = JsonFileLocalStore(Path(resolved_settings.local_store_path))

    if resolved_settings.email_endpoint_url:
        email_transport: HttpxEmailTransport | DisabledEmailTransport = (
            HttpxEmailTransport.create(resolved_settings.email_endpoint_url)
        )
    else:
        email_transport = DisabledEmailTransport()

    identity_service = IdentityService(local_store)
    favorites_service = FavoritesService(
        record_store=record_store,
        local_store=local_store,
        identity=identity_service,
    )
    catalog_service = CatalogService(
        record_store=record_store,
        blob_store=blob_store,
        default_bucket=resolved_settings.photos_bucket,
    )
    email_service = EmailService(
        local_store=local_store,
        transport=email_transport,
        from_address=resolved_settings.email_from,
    )
    selection_service = SelectionService(
        favorites_service=favorites_service,
        identity=identity_service,
        catalog=catalog_service,
        blob_store=blob_store,
        email_service=email_service,
        photos_bucket=resolved_settings.photos_bucket,
        selections_prefix=resolved_settings.selections_prefix,
        public_base_url=resolved_settings.public_base_url,
    )

    devices = DeviceRegistry(
        record_store=record_store,
        blob_store=blob_store,
        local_store=local_store,
        catalog=catalog_service,
        email_service=email_service,
        photos_bucket=resolved_settings.photos_bucket,
        selections_prefix=resolved_settings.selections_prefix,
        public_base_url=resolved_settings.public_base_url,
    )

    async def close_resources() -> None:
        await email_transport.close()

    return AppContainer(
        settings=resolved_settings,
        identity_service=identity_service,
        favorites_service=favorites_service,
        catalog_service=catalog_service,
        email_service=email_service,
        selection_service=selection_service,
        devices=devices,
        close_resources=close_resources,
    )
