"""Persistence interfaces shared by the gallery services."""

from typing import Protocol

from gallery_selection.domain.catalog import BlobEntry
from gallery_selection.domain.results import StoreResult

Row = dict[str, object]
Filters = dict[str, object]


class RecordStore(Protocol):
    """Generic table access over the hosted relational store."""

    def is_ready(self) -> bool:
        """Return whether the store is configured and usable."""

    def select(
        self,
        table: str,
        filters: Filters,
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> StoreResult[list[Row]]:
        """Return rows matching every equality filter."""

    def insert(self, table: str, row: Row) -> StoreResult[Row]:
        """Insert a row and return it as stored."""

    def update(
        self, table: str, values: Row, filters: Filters
    ) -> StoreResult[list[Row]]:
        """Update rows matching the filters and return them."""

    def delete(self, table: str, filters: Filters) -> StoreResult[list[Row]]:
        """Delete rows matching the filters and return the deleted rows."""


class BlobStore(Protocol):
    """Object storage for photos and exported manifests."""

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StoreResult[str]:
        """Upload bytes and return the stored path."""

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL of a stored object."""

    def list(self, bucket: str, prefix: str) -> StoreResult[list[BlobEntry]]:
        """List objects under a prefix."""

    def delete(self, bucket: str, path: str) -> StoreResult[bool]:
        """Delete an object."""
