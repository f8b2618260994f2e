"""Shared favorites and comments with local fallback.

Remote rows are the shared selection for a gallery. When the backend is not
configured, or a call returns a transport error, every operation falls back
to the device-local legacy store so the user-visible action still succeeds.
Legacy local data is pushed to the backend once it becomes reachable.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TypeVar

from gallery_selection.domain.favorites import (
    Comment,
    Favorite,
    MigrationReport,
    MigrationState,
)
from gallery_selection.domain.results import (
    Ok,
    StoreResult,
    TransportError,
    TransportErrorKind,
)
from gallery_selection.services.identity import IdentityService
from gallery_selection.services.local_store import LocalStore, read_json, write_json
from gallery_selection.services.stores import RecordStore, Row

FAVORITES_TABLE = "favorites"
COMMENTS_TABLE = "comments"
LOCAL_FAVORITES_KEY = "gallery-favorites"
LOCAL_COMMENTS_KEY = "gallery-comments"
BACKUP_SUFFIX = "-backup"

T = TypeVar("T")

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def dedupe_favorites(rows: Iterable[Favorite]) -> list[Favorite]:
    """Keep the first favorite seen for each photo id, preserving order."""
    unique: dict[str, Favorite] = {}
    for favorite in rows:
        unique.setdefault(favorite.photo_id, favorite)
    return list(unique.values())


@dataclass
class FavoritesService:
    """Reconciles the shared selection and comments for galleries."""

    record_store: RecordStore
    local_store: LocalStore
    identity: IdentityService
    migration_state: MigrationState = field(default_factory=MigrationState)
    clock: Callable[[], datetime] = field(default=_utcnow)

    # Favorites

    def get_favorite_rows(self, gallery_id: str) -> list[Favorite]:
        """Return every stored favorite row, including per-user duplicates."""
        if not self.record_store.is_ready():
            return self._local_favorites(gallery_id)
        self.migrate_local_data()
        result = self.record_store.select(FAVORITES_TABLE, {"gallery_id": gallery_id})
        rows = _parse_rows(result, self._favorite_from_row)
        if isinstance(rows, TransportError):
            self._log_fallback("get_favorites", rows)
            return self._local_favorites(gallery_id)
        return rows.value

    def get_favorites(self, gallery_id: str) -> list[Favorite]:
        """Return one favorite per selected photo."""
        favorites = dedupe_favorites(self.get_favorite_rows(gallery_id))
        _logger.info("Loaded %s unique favorites for %s", len(favorites), gallery_id)
        return favorites

    def add_to_favorites(self, gallery_id: str, photo_id: str) -> Favorite:
        """Add a photo to the shared selection.

        Re-adding from the same caller (same user id, or same device when no
        session exists) returns the existing row. Other callers get their own
        row so attribution is kept; reads dedupe by photo.
        """
        if self.record_store.is_ready():
            result = self._add_favorite_remote(gallery_id, photo_id)
            if isinstance(result, Ok):
                return result.value
            self._log_fallback("add_to_favorites", result)
        return self._add_favorite_local(gallery_id, photo_id)

    def remove_from_favorites(self, gallery_id: str, photo_id: str) -> bool:
        """Remove a photo from the selection for every user and device."""
        if self.record_store.is_ready():
            result = self.record_store.delete(
                FAVORITES_TABLE, {"gallery_id": gallery_id, "photo_id": photo_id}
            )
            if isinstance(result, Ok):
                _logger.info(
                    "Removed %s from shared favorites of %s", photo_id, gallery_id
                )
                return True
            self._log_fallback("remove_from_favorites", result)
        return self._remove_favorite_local(gallery_id, photo_id)

    def clear_all_favorites(self, gallery_id: str) -> bool:
        """Delete every favorite of a gallery, remotely and locally."""
        remote_ok = True
        if self.record_store.is_ready():
            result = self.record_store.delete(
                FAVORITES_TABLE, {"gallery_id": gallery_id}
            )
            if isinstance(result, TransportError):
                self._log_fallback("clear_all_favorites", result)
                remote_ok = False
        self._drop_local_gallery(LOCAL_FAVORITES_KEY, gallery_id)
        return remote_ok

    def is_photo_favorited(self, gallery_id: str, photo_id: str) -> bool:
        return any(fav.photo_id == photo_id for fav in self.get_favorites(gallery_id))

    def get_favorites_count(self, gallery_id: str) -> int:
        return len(self.get_favorites(gallery_id))

    def get_device_id(self) -> str:
        return self.identity.get_or_create_device_id()

    # Comments

    def get_comments(self, gallery_id: str) -> list[Comment]:
        """Return every comment of a gallery, newest first when remote."""
        if not self.record_store.is_ready():
            return self._local_comments(gallery_id)
        self.migrate_local_data()
        result = self.record_store.select(COMMENTS_TABLE, {"gallery_id": gallery_id})
        comments = _parse_rows(result, self._comment_from_row)
        if isinstance(comments, TransportError):
            self._log_fallback("get_comments", comments)
            return self._local_comments(gallery_id)
        return comments.value

    def add_comment(self, gallery_id: str, photo_id: str, text: str) -> Comment:
        """Append a comment; comments are never deduplicated."""
        if self.record_store.is_ready():
            result = self._add_comment_remote(gallery_id, photo_id, text)
            if isinstance(result, Ok):
                return result.value
            self._log_fallback("add_comment", result)
        return self._add_comment_local(gallery_id, photo_id, text)

    def remove_comment(self, comment_id: str) -> bool:
        """Delete a comment created from this device."""
        if self.record_store.is_ready():
            result = self.record_store.delete(
                COMMENTS_TABLE,
                {"id": comment_id, "device_id": self.get_device_id()},
            )
            if isinstance(result, Ok):
                return bool(result.value)
            self._log_fallback("remove_comment", result)
        return self._remove_comment_local(comment_id)

    def clear_all_comments(self, gallery_id: str) -> bool:
        """Delete every comment of a gallery, remotely and locally."""
        remote_ok = True
        if self.record_store.is_ready():
            result = self.record_store.delete(
                COMMENTS_TABLE, {"gallery_id": gallery_id}
            )
            if isinstance(result, TransportError):
                self._log_fallback("clear_all_comments", result)
                remote_ok = False
        self._drop_local_gallery(LOCAL_COMMENTS_KEY, gallery_id)
        return remote_ok

    def get_photo_comments(self, gallery_id: str, photo_id: str) -> list[Comment]:
        return [c for c in self.get_comments(gallery_id) if c.photo_id == photo_id]

    def get_comments_count(self, gallery_id: str) -> int:
        return len(self.get_comments(gallery_id))

    def get_photo_comments_count(self, gallery_id: str, photo_id: str) -> int:
        return len(self.get_photo_comments(gallery_id, photo_id))

    # Migration

    def migrate_local_data(self) -> MigrationReport:
        """Push legacy local favorites and comments to the backend once.

        Entries are migrated one by one and failures do not roll back
        earlier entries. When anything fails the local keys are kept and the
        state stays incomplete so a later call retries; favorites are then
        protected by the idempotent add but comments are inserted again.
        """
        report = MigrationReport(completed=self.migration_state.completed)
        if self.migration_state.completed or not self.record_store.is_ready():
            return report

        raw_favorites = self.local_store.get(LOCAL_FAVORITES_KEY)
        raw_comments = self.local_store.get(LOCAL_COMMENTS_KEY)

        for gallery_id, photo_ids in _legacy_map(self.local_store, LOCAL_FAVORITES_KEY):
            if not isinstance(photo_ids, list):
                continue
            for photo_id in photo_ids:
                result = self._add_favorite_remote(gallery_id, str(photo_id))
                if isinstance(result, TransportError):
                    report.favorites_failed += 1
                    report.errors.append(
                        f"favorite {gallery_id}/{photo_id}: {result.message}"
                    )
                else:
                    report.favorites_migrated += 1

        for gallery_id, entries in _legacy_map(self.local_store, LOCAL_COMMENTS_KEY):
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                photo_id = entry.get("photoId")
                text = entry.get("comment")
                if not photo_id or not text:
                    continue
                result = self._add_comment_remote(gallery_id, str(photo_id), str(text))
                if isinstance(result, TransportError):
                    report.comments_failed += 1
                    report.errors.append(
                        f"comment {gallery_id}/{photo_id}: {result.message}"
                    )
                else:
                    report.comments_migrated += 1

        if report.has_failures:
            _logger.warning(
                "Local data migration incomplete: %s favorites and %s comments failed",
                report.favorites_failed,
                report.comments_failed,
            )
            return report

        legacy = (
            (LOCAL_FAVORITES_KEY, raw_favorites),
            (LOCAL_COMMENTS_KEY, raw_comments),
        )
        for key, raw in legacy:
            if raw is not None:
                self.local_store.set(f"{key}{BACKUP_SUFFIX}", raw)
                self.local_store.remove(key)

        self.migration_state.completed = True
        report.completed = True
        _logger.info(
            "Local data migration completed: %s favorites, %s comments",
            report.favorites_migrated,
            report.comments_migrated,
        )
        return report

    # Remote helpers

    def _add_favorite_remote(
        self, gallery_id: str, photo_id: str
    ) -> StoreResult[Favorite]:
        principal = self.identity.current_principal()
        filters: dict[str, object] = {"gallery_id": gallery_id, "photo_id": photo_id}
        if principal.user_id:
            filters["user_id"] = principal.user_id
        else:
            filters["device_id"] = principal.device_id
        existing = _parse_rows(
            self.record_store.select(FAVORITES_TABLE, filters, limit=1),
            self._favorite_from_row,
        )
        if isinstance(existing, TransportError):
            return existing
        if existing.value:
            return Ok(existing.value[0])

        inserted = self.record_store.insert(
            FAVORITES_TABLE,
            {
                "gallery_id": gallery_id,
                "photo_id": photo_id,
                "device_id": principal.device_id,
                "user_id": principal.user_id,
                "user_name": principal.user_name,
            },
        )
        favorite = _parse_row(inserted, self._favorite_from_row)
        if isinstance(favorite, Ok):
            _logger.info("Added %s to shared favorites of %s", photo_id, gallery_id)
        return favorite

    def _add_comment_remote(
        self, gallery_id: str, photo_id: str, text: str
    ) -> StoreResult[Comment]:
        principal = self.identity.current_principal()
        inserted = self.record_store.insert(
            COMMENTS_TABLE,
            {
                "gallery_id": gallery_id,
                "photo_id": photo_id,
                "device_id": principal.device_id,
                "user_id": principal.user_id,
                "user_name": principal.user_name,
                "comment": text,
            },
        )
        return _parse_row(inserted, self._comment_from_row)

    def _favorite_from_row(self, row: Row) -> Favorite:
        return Favorite(
            id=str(row["id"]),
            gallery_id=str(row["gallery_id"]),
            photo_id=str(row["photo_id"]),
            device_id=str(row.get("device_id") or ""),
            created_at=self._timestamp(row.get("created_at")),
            updated_at=self._timestamp(row.get("updated_at")),
            user_id=_optional_str(row.get("user_id")),
            user_name=_optional_str(row.get("user_name")),
        )

    def _comment_from_row(self, row: Row) -> Comment:
        return Comment(
            id=str(row["id"]),
            gallery_id=str(row["gallery_id"]),
            photo_id=str(row["photo_id"]),
            device_id=str(row.get("device_id") or ""),
            text=str(row["comment"]),
            created_at=self._timestamp(row.get("created_at")),
            updated_at=self._timestamp(row.get("updated_at")),
            user_id=_optional_str(row.get("user_id")),
            user_name=_optional_str(row.get("user_name")),
        )

    # Local helpers

    def _local_favorites(self, gallery_id: str) -> list[Favorite]:
        photo_ids = _legacy_gallery(self.local_store, LOCAL_FAVORITES_KEY, gallery_id)
        principal = self.identity.current_principal()
        now = self.clock()
        return [
            Favorite(
                id=f"local_{gallery_id}_{photo_id}_{index}",
                gallery_id=gallery_id,
                photo_id=str(photo_id),
                device_id=principal.device_id,
                created_at=now,
                updated_at=now,
                user_id=principal.user_id,
                user_name=principal.user_name,
            )
            for index, photo_id in enumerate(photo_ids)
        ]

    def _add_favorite_local(self, gallery_id: str, photo_id: str) -> Favorite:
        all_favorites = _legacy_dict(self.local_store, LOCAL_FAVORITES_KEY)
        gallery_favorites = all_favorites.setdefault(gallery_id, [])
        if photo_id not in gallery_favorites:
            gallery_favorites.append(photo_id)
            write_json(self.local_store, LOCAL_FAVORITES_KEY, all_favorites)
        principal = self.identity.current_principal()
        now = self.clock()
        return Favorite(
            id=f"local_{gallery_id}_{photo_id}_{int(now.timestamp() * 1000)}",
            gallery_id=gallery_id,
            photo_id=photo_id,
            device_id=principal.device_id,
            created_at=now,
            updated_at=now,
            user_id=principal.user_id,
            user_name=principal.user_name,
        )

    def _remove_favorite_local(self, gallery_id: str, photo_id: str) -> bool:
        all_favorites = _legacy_dict(self.local_store, LOCAL_FAVORITES_KEY)
        gallery_favorites = all_favorites.get(gallery_id)
        if not isinstance(gallery_favorites, list) or photo_id not in gallery_favorites:
            return False
        gallery_favorites.remove(photo_id)
        write_json(self.local_store, LOCAL_FAVORITES_KEY, all_favorites)
        return True

    def _local_comments(self, gallery_id: str) -> list[Comment]:
        entries = _legacy_gallery(self.local_store, LOCAL_COMMENTS_KEY, gallery_id)
        device_id = self.get_device_id()
        comments = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict) or "photoId" not in entry:
                continue
            comments.append(
                Comment(
                    id=str(
                        entry.get("id")
                        or f"local_{gallery_id}_{entry['photoId']}_{index}"
                    ),
                    gallery_id=gallery_id,
                    photo_id=str(entry["photoId"]),
                    device_id=device_id,
                    text=str(entry.get("comment", "")),
                    created_at=self._timestamp(entry.get("createdAt")),
                    updated_at=self._timestamp(entry.get("updatedAt")),
                    user_id=_optional_str(entry.get("userId")),
                    user_name=_optional_str(entry.get("userName")),
                )
            )
        return comments

    def _add_comment_local(self, gallery_id: str, photo_id: str, text: str) -> Comment:
        all_comments = _legacy_dict(self.local_store, LOCAL_COMMENTS_KEY)
        principal = self.identity.current_principal()
        now = self.clock()
        comment = Comment(
            id=f"local_{gallery_id}_{photo_id}_{int(now.timestamp() * 1000)}",
            gallery_id=gallery_id,
            photo_id=photo_id,
            device_id=principal.device_id,
            text=text,
            created_at=now,
            updated_at=now,
            user_id=principal.user_id,
            user_name=principal.user_name,
        )
        all_comments.setdefault(gallery_id, []).append(
            {
                "id": comment.id,
                "galleryId": gallery_id,
                "photoId": photo_id,
                "deviceId": comment.device_id,
                "userId": comment.user_id,
                "userName": comment.user_name,
                "comment": text,
                "createdAt": now.isoformat(),
                "updatedAt": now.isoformat(),
            }
        )
        write_json(self.local_store, LOCAL_COMMENTS_KEY, all_comments)
        return comment

    def _remove_comment_local(self, comment_id: str) -> bool:
        all_comments = _legacy_dict(self.local_store, LOCAL_COMMENTS_KEY)
        for entries in all_comments.values():
            if not isinstance(entries, list):
                continue
            for index, entry in enumerate(entries):
                if isinstance(entry, dict) and entry.get("id") == comment_id:
                    del entries[index]
                    write_json(self.local_store, LOCAL_COMMENTS_KEY, all_comments)
                    return True
        return False

    def _drop_local_gallery(self, key: str, gallery_id: str) -> None:
        data = _legacy_dict(self.local_store, key)
        if gallery_id in data:
            del data[gallery_id]
            write_json(self.local_store, key, data)

    def _timestamp(self, value: object) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, str) and value:
            return datetime.fromisoformat(value)
        return self.clock()

    def _log_fallback(self, action: str, error: TransportError) -> None:
        _logger.warning(
            "Falling back to local storage for %s (%s): %s",
            action,
            error.kind,
            error.message,
        )


def _parse_rows(
    result: StoreResult[list[Row]], parser: Callable[[Row], T]
) -> StoreResult[list[T]]:
    """Map raw rows to domain records, treating bad rows as a malformed response."""
    if isinstance(result, TransportError):
        return result
    try:
        return Ok([parser(row) for row in result.value])
    except (KeyError, TypeError, ValueError) as exc:
        return TransportError(
            TransportErrorKind.MALFORMED, f"Unexpected row shape: {exc}"
        )


def _parse_row(result: StoreResult[Row], parser: Callable[[Row], T]) -> StoreResult[T]:
    if isinstance(result, TransportError):
        return result
    try:
        return Ok(parser(result.value))
    except (KeyError, TypeError, ValueError) as exc:
        return TransportError(
            TransportErrorKind.MALFORMED, f"Unexpected row shape: {exc}"
        )


def _legacy_dict(store: LocalStore, key: str) -> dict[str, list]:
    data = read_json(store, key)
    return data if isinstance(data, dict) else {}


def _legacy_map(store: LocalStore, key: str) -> list[tuple[str, object]]:
    return list(_legacy_dict(store, key).items())


def _legacy_gallery(store: LocalStore, key: str, gallery_id: str) -> list:
    entries = _legacy_dict(store, key).get(gallery_id)
    return entries if isinstance(entries, list) else []


def _optional_str(value: object) -> str | None:
    return str(value) if value not in (None, "") else None
