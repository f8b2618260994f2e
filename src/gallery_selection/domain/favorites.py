"""Domain models for favorites and comments."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Favorite:
    """A photo marked as part of a gallery's shared selection."""

    id: str
    gallery_id: str
    photo_id: str
    device_id: str
    created_at: datetime
    updated_at: datetime
    user_id: str | None = None
    user_name: str | None = None


@dataclass(frozen=True)
class Comment:
    """An append-only comment left on a photo."""

    id: str
    gallery_id: str
    photo_id: str
    device_id: str
    text: str
    created_at: datetime
    updated_at: datetime
    user_id: str | None = None
    user_name: str | None = None


@dataclass
class MigrationState:
    """Tracks whether legacy local data has been pushed to the backend."""

    completed: bool = False


@dataclass
class MigrationReport:
    """Outcome of one migration attempt."""

    favorites_migrated: int = 0
    favorites_failed: int = 0
    comments_migrated: int = 0
    comments_failed: int = 0
    completed: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        """Return whether any legacy entry failed to migrate."""
        return bool(self.favorites_failed or self.comments_failed)
