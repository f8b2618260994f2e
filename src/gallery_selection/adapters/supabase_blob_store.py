"""Supabase Storage blob adapter."""

import logging
from dataclasses import dataclass
from datetime import datetime

import httpx
from storage3.utils import StorageException
from supabase import Client

from gallery_selection.domain.catalog import BlobEntry
from gallery_selection.domain.results import (
    Ok,
    StoreResult,
    TransportError,
    TransportErrorKind,
)
from gallery_selection.services.stores import BlobStore

_logger = logging.getLogger(__name__)

_UNCONFIGURED = TransportError(
    TransportErrorKind.UNCONFIGURED, "Supabase is not configured"
)


@dataclass
class SupabaseBlobStore(BlobStore):
    """Supabase Storage implementation for photo and manifest files."""

    client: Client | None

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StoreResult[str]:
        """Upload bytes to a bucket path."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            self.client.storage.from_(bucket).upload(
                path=path,
                file=data,
                file_options={
                    "content-type": content_type,
                    "upsert": "true" if upsert else "false",
                },
            )
        except (StorageException, httpx.HTTPError) as exc:
            return _transport_error(bucket, "upload", exc)
        return Ok(path)

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL of an object, or an empty string."""
        if self.client is None:
            return ""
        return self.client.storage.from_(bucket).get_public_url(path)

    def list(self, bucket: str, prefix: str) -> StoreResult[list[BlobEntry]]:
        """List objects directly under a prefix."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            files = self.client.storage.from_(bucket).list(prefix)
        except (StorageException, httpx.HTTPError) as exc:
            return _transport_error(bucket, "list", exc)
        entries = []
        for item in files:
            metadata = item.get("metadata") or {}
            entries.append(
                BlobEntry(
                    name=str(item.get("name", "")),
                    created_at=_parse_timestamp(item.get("created_at")),
                    size=int(metadata.get("size") or 0),
                    mime_type=metadata.get("mimetype"),
                )
            )
        return Ok(entries)

    def delete(self, bucket: str, path: str) -> StoreResult[bool]:
        """Delete an object from a bucket."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            removed = self.client.storage.from_(bucket).remove([path])
        except (StorageException, httpx.HTTPError) as exc:
            return _transport_error(bucket, "delete", exc)
        return Ok(bool(removed))


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _transport_error(bucket: str, action: str, exc: Exception) -> TransportError:
    kind = (
        TransportErrorKind.REJECTED
        if isinstance(exc, StorageException)
        else TransportErrorKind.UNREACHABLE
    )
    _logger.warning("Storage %s in %s failed (%s): %s", action, bucket, kind, exc)
    return TransportError(kind, str(exc))
