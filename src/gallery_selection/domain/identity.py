"""Identity domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserSession:
    """Device-local display name and generated id for attribution."""

    user_id: str
    user_name: str
    device_id: str
    created_at: datetime


@dataclass(frozen=True)
class Principal:
    """Unauthenticated attribution tag attached to favorites and comments."""

    device_id: str
    user_id: str | None = None
    user_name: str | None = None


@dataclass(frozen=True)
class UserStats:
    """Summary of the current device session."""

    is_logged_in: bool
    user_name: str | None = None
    session_created: datetime | None = None
    days_since_creation: int | None = None
