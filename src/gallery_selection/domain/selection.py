"""Domain models for selection exports."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class SelectionType(StrEnum):
    """Which favorites an export covers."""

    PERSONAL = "personal"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ClientInfo:
    """Optional client contact details attached to an export."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None

    def cleaned(self) -> "ClientInfo":
        """Return a copy with trimmed values and empty fields dropped."""
        return ClientInfo(
            name=_clean(self.name),
            email=_clean(self.email),
            phone=_clean(self.phone),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.email or self.phone)


@dataclass(frozen=True)
class SelectedPhoto:
    """A photo line in the exported manifest."""

    photo_id: str
    photo_name: str
    original_name: str
    url: str
    comments: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AttributedComment:
    """A comment with the display name of its author."""

    user_name: str
    text: str


@dataclass(frozen=True)
class PhotoAttribution:
    """Who favorited and commented on one photo."""

    photo_id: str
    users: list[str]
    comments: list[AttributedComment]


@dataclass(frozen=True)
class SelectionExport:
    """Derived selection document rendered into the text manifest."""

    gallery_id: str
    gallery_name: str
    export_date: datetime
    selection_type: SelectionType
    selected_photos: list[SelectedPhoto]
    total_selected: int
    client_info: ClientInfo | None = None
    multi_user_data: list[PhotoAttribution] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationResult:
    """Collected validation errors."""

    errors: list[str]

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class NotificationResult:
    """Outcome of the photographer notification for an export."""

    sent: bool
    message_id: str | None = None
    error: str | None = None
    skipped_reason: str | None = None


@dataclass(frozen=True)
class ExportResult:
    """Outcome of an export request."""

    export: SelectionExport
    file_name: str
    download_url: str
    is_temporary: bool
    personal_fallback: bool
    notification: NotificationResult


@dataclass(frozen=True)
class SelectionFile:
    """A previously exported manifest."""

    name: str
    created_at: datetime | None
    url: str


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
