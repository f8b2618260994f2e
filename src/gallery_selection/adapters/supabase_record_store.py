"""Supabase-backed generic record store."""

import logging
from dataclasses import dataclass

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from gallery_selection.domain.results import (
    Ok,
    StoreResult,
    TransportError,
    TransportErrorKind,
)
from gallery_selection.services.stores import Filters, RecordStore, Row

_logger = logging.getLogger(__name__)

_UNCONFIGURED = TransportError(
    TransportErrorKind.UNCONFIGURED, "Supabase is not configured"
)


@dataclass
class SupabaseRecordStore(RecordStore):
    """Supabase implementation of table reads and writes."""

    client: Client | None

    def is_ready(self) -> bool:
        """Return whether a Supabase client is available."""
        return self.client is not None

    def select(
        self,
        table: str,
        filters: Filters,
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> StoreResult[list[Row]]:
        """Return rows matching every equality filter."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            query = self.client.table(table).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            response = query.execute()
        except (APIError, httpx.HTTPError) as exc:
            return _transport_error(table, "select", exc)
        return Ok(list(response.data or []))

    def insert(self, table: str, row: Row) -> StoreResult[Row]:
        """Insert a row and return it as stored."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            response = self.client.table(table).insert(row).execute()
        except (APIError, httpx.HTTPError) as exc:
            return _transport_error(table, "insert", exc)
        if not response.data:
            return TransportError(
                TransportErrorKind.MALFORMED, f"Insert into {table} returned no row"
            )
        return Ok(response.data[0])

    def update(
        self, table: str, values: Row, filters: Filters
    ) -> StoreResult[list[Row]]:
        """Update rows matching the filters and return them."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            query = self.client.table(table).update(values)
            for column, value in filters.items():
                query = query.eq(column, value)
            response = query.execute()
        except (APIError, httpx.HTTPError) as exc:
            return _transport_error(table, "update", exc)
        return Ok(list(response.data or []))

    def delete(self, table: str, filters: Filters) -> StoreResult[list[Row]]:
        """Delete rows matching the filters and return the deleted rows."""
        if self.client is None:
            return _UNCONFIGURED
        try:
            query = self.client.table(table).delete()
            for column, value in filters.items():
                query = query.eq(column, value)
            response = query.execute()
        except (APIError, httpx.HTTPError) as exc:
            return _transport_error(table, "delete", exc)
        return Ok(list(response.data or []))


def _transport_error(table: str, action: str, exc: Exception) -> TransportError:
    kind = (
        TransportErrorKind.REJECTED
        if isinstance(exc, APIError)
        else TransportErrorKind.UNREACHABLE
    )
    message = getattr(exc, "message", None) or str(exc)
    _logger.warning("Supabase %s on %s failed (%s): %s", action, table, kind, message)
    return TransportError(kind, message)
