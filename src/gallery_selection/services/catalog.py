"""Gallery and photo catalog."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import PurePosixPath
from typing import TypeVar

from gallery_selection.domain.catalog import Gallery, Photo, SubfolderInfo
from gallery_selection.domain.results import TransportError
from gallery_selection.services.stores import BlobStore, RecordStore, Row

GALLERIES_TABLE = "galleries"
PHOTOS_TABLE = "photos"

_GALLERY_FIELDS = {
    "name",
    "description",
    "is_public",
    "bucket_name",
    "bucket_folder",
    "allow_comments",
    "allow_favorites",
}

T = TypeVar("T")

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CatalogService:
    """CRUD over galleries and their photos."""

    record_store: RecordStore
    blob_store: BlobStore
    default_bucket: str = "photos"
    clock: Callable[[], datetime] = field(default=_utcnow)

    def get_gallery(self, gallery_id: str) -> Gallery | None:
        """Return a gallery by id, or None when missing or unreachable."""
        result = self.record_store.select(
            GALLERIES_TABLE, {"id": gallery_id}, order_by=None, limit=1
        )
        if isinstance(result, TransportError):
            _logger.warning("Gallery %s unavailable: %s", gallery_id, result.message)
            return None
        if not result.value:
            return None
        return _parse_row(result.value[0], _gallery_from_row)

    def list_galleries(self) -> list[Gallery]:
        """Return all galleries, newest first."""
        result = self.record_store.select(GALLERIES_TABLE, {})
        if isinstance(result, TransportError):
            _logger.warning("Galleries unavailable: %s", result.message)
            return []
        return _parse_rows(result.value, _gallery_from_row)

    def create_gallery(  # noqa: PLR0913
        self,
        name: str,
        description: str | None = None,
        is_public: bool = True,
        allow_comments: bool = True,
        allow_favorites: bool = True,
    ) -> Gallery | None:
        """Create a gallery row."""
        result = self.record_store.insert(
            GALLERIES_TABLE,
            {
                "name": name.strip(),
                "description": description,
                "is_public": is_public,
                "bucket_name": self.default_bucket,
                "allow_comments": allow_comments,
                "allow_favorites": allow_favorites,
                "photo_count": 0,
            },
        )
        if isinstance(result, TransportError):
            _logger.warning("Gallery creation failed: %s", result.message)
            return None
        gallery = _parse_row(result.value, _gallery_from_row)
        if gallery is None:
            return None
        if not gallery.bucket_folder:
            self.record_store.update(
                GALLERIES_TABLE, {"bucket_folder": gallery.id}, {"id": gallery.id}
            )
        _logger.info("Gallery %s created", gallery.id)
        return gallery

    def update_gallery(
        self, gallery_id: str, changes: dict[str, object]
    ) -> Gallery | None:
        """Apply allowed field changes and return the updated gallery."""
        values: Row = {
            key: value for key, value in changes.items() if key in _GALLERY_FIELDS
        }
        values["updated_at"] = self.clock().isoformat()
        result = self.record_store.update(GALLERIES_TABLE, values, {"id": gallery_id})
        if isinstance(result, TransportError):
            _logger.warning("Gallery %s update failed: %s", gallery_id, result.message)
            return None
        if not result.value:
            return None
        return _parse_row(result.value[0], _gallery_from_row)

    def delete_gallery(self, gallery_id: str) -> bool:
        """Delete a gallery, its photo rows and their files."""
        for photo in self.list_photos(gallery_id):
            if photo.bucket_path:
                self.blob_store.delete(self.default_bucket, photo.bucket_path)
        photos = self.record_store.delete(PHOTOS_TABLE, {"gallery_id": gallery_id})
        if isinstance(photos, TransportError):
            return False
        result = self.record_store.delete(GALLERIES_TABLE, {"id": gallery_id})
        return not isinstance(result, TransportError)

    def list_photos(self, gallery_id: str, subfolder: str | None = None) -> list[Photo]:
        """Return the photos of a gallery, optionally within one sub-folder."""
        filters: dict[str, object] = {"gallery_id": gallery_id}
        if subfolder:
            filters["subfolder"] = subfolder
        result = self.record_store.select(PHOTOS_TABLE, filters)
        if isinstance(result, TransportError):
            _logger.warning("Photos of %s unavailable: %s", gallery_id, result.message)
            return []
        return _parse_rows(result.value, _photo_from_row)

    def list_subfolders(self, gallery_id: str) -> list[SubfolderInfo]:
        """Summarize the sub-folders used by a gallery's photos."""
        summaries: dict[str, SubfolderInfo] = {}
        for photo in self.list_photos(gallery_id):
            if not photo.subfolder:
                continue
            current = summaries.get(photo.subfolder)
            if current is None:
                summaries[photo.subfolder] = SubfolderInfo(
                    name=photo.subfolder, photo_count=1, last_updated=photo.uploaded_at
                )
                continue
            last_updated = current.last_updated
            if photo.uploaded_at and (
                last_updated is None or photo.uploaded_at > last_updated
            ):
                last_updated = photo.uploaded_at
            summaries[photo.subfolder] = SubfolderInfo(
                name=current.name,
                photo_count=current.photo_count + 1,
                last_updated=last_updated,
            )
        return sorted(summaries.values(), key=lambda info: info.name)

    def upload_photo(  # noqa: PLR0913
        self,
        gallery_id: str,
        file_name: str,
        data: bytes,
        content_type: str,
        subfolder: str | None = None,
    ) -> Photo | None:
        """Store a photo file and record it in the catalog."""
        name = PurePosixPath(file_name).name
        subfolder = subfolder.strip("/") if subfolder else None
        bucket_path = _bucket_path(gallery_id, subfolder, name)
        uploaded = self.blob_store.upload(
            self.default_bucket, bucket_path, data, content_type=content_type
        )
        if isinstance(uploaded, TransportError):
            _logger.warning("Photo upload %s failed: %s", bucket_path, uploaded.message)
            return None
        url = self.blob_store.get_public_url(self.default_bucket, bucket_path)
        inserted = self.record_store.insert(
            PHOTOS_TABLE,
            {
                "gallery_id": gallery_id,
                "name": name,
                "url": url,
                "file_size": len(data),
                "file_type": content_type,
                "subfolder": subfolder or None,
            },
        )
        if isinstance(inserted, TransportError):
            _logger.warning(
                "Photo row for %s failed: %s", bucket_path, inserted.message
            )
            self.blob_store.delete(self.default_bucket, bucket_path)
            return None
        self._refresh_photo_count(gallery_id)
        return _parse_row(inserted.value, _photo_from_row)

    def delete_photo(self, gallery_id: str, photo_id: str) -> bool:
        """Delete a photo file and its catalog row."""
        result = self.record_store.select(
            PHOTOS_TABLE,
            {"id": photo_id, "gallery_id": gallery_id},
            order_by=None,
            limit=1,
        )
        if isinstance(result, TransportError) or not result.value:
            return False
        photo = _parse_row(result.value[0], _photo_from_row)
        if photo is not None and photo.bucket_path:
            self.blob_store.delete(self.default_bucket, photo.bucket_path)
        deleted = self.record_store.delete(PHOTOS_TABLE, {"id": photo_id})
        if isinstance(deleted, TransportError):
            return False
        self._refresh_photo_count(gallery_id)
        return True

    def _refresh_photo_count(self, gallery_id: str) -> None:
        count = len(self.list_photos(gallery_id))
        self.record_store.update(
            GALLERIES_TABLE,
            {"photo_count": count, "updated_at": self.clock().isoformat()},
            {"id": gallery_id},
        )


def _bucket_path(gallery_id: str, subfolder: str | None, name: str) -> str:
    if subfolder:
        return f"{gallery_id}/{subfolder.strip('/')}/{name}"
    return f"{gallery_id}/{name}"


def _parse_row(row: Row, parser: Callable[[Row], T]) -> T | None:
    """Parse one catalog row, skipping it with a warning when malformed."""
    try:
        return parser(row)
    except (KeyError, TypeError, ValueError) as exc:
        _logger.warning("Skipping malformed catalog row %s: %s", row.get("id"), exc)
        return None


def _parse_rows(rows: Iterable[Row], parser: Callable[[Row], T]) -> list[T]:
    parsed = (_parse_row(row, parser) for row in rows)
    return [item for item in parsed if item is not None]


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None


def _gallery_from_row(row: Row) -> Gallery:
    return Gallery(
        id=str(row["id"]),
        name=str(row.get("name") or row["id"]),
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
        description=row.get("description"),
        is_public=bool(row.get("is_public", True)),
        bucket_name=row.get("bucket_name"),
        bucket_folder=row.get("bucket_folder"),
        photo_count=int(row.get("photo_count") or 0),
        allow_comments=bool(row.get("allow_comments", True)),
        allow_favorites=bool(row.get("allow_favorites", True)),
    )


def _photo_from_row(row: Row) -> Photo:
    gallery_id = str(row["gallery_id"])
    name = str(row["name"])
    subfolder = row.get("subfolder") or None
    return Photo(
        id=str(row["id"]),
        gallery_id=gallery_id,
        name=name,
        original_name=str(row.get("original_name") or name),
        url=str(row.get("url") or ""),
        uploaded_at=_parse_timestamp(row.get("created_at")),
        size=int(row.get("file_size") or 0),
        mime_type=str(row.get("file_type") or "image/jpeg"),
        description=str(row.get("description") or ""),
        subfolder=subfolder,
        bucket_path=_bucket_path(gallery_id, subfolder, name),
    )
