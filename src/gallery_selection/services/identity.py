"""Device identity and display-name sessions.

Identities are attribution hints only: nothing here is verified by the
backend and none of it may be used to authorize an action.
"""

import logging
import re
import secrets
import string
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from gallery_selection.domain.errors import InvalidNameError
from gallery_selection.domain.identity import Principal, UserSession, UserStats
from gallery_selection.services.local_store import LocalStore, read_json, write_json

DEVICE_ID_KEY = "gallery-device-id"
USER_SESSION_KEY = "gallery-user-session"

_NAME_PATTERN = re.compile(r"[a-zA-ZÀ-ÿ0-9\s\-']+")
_NAME_MIN_LENGTH = 2
_NAME_MAX_LENGTH = 50
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def validate_user_name(name: str | None) -> str | None:
    """Return a human-readable reason when the name is invalid."""
    cleaned = (name or "").strip()
    if not cleaned:
        return "Le nom ne peut pas être vide"
    if len(cleaned) < _NAME_MIN_LENGTH:
        return "Le nom doit contenir au moins 2 caractères"
    if len(cleaned) > _NAME_MAX_LENGTH:
        return "Le nom ne peut pas dépasser 50 caractères"
    if not _NAME_PATTERN.fullmatch(cleaned):
        return "Le nom contient des caractères non autorisés"
    return None


def generate_id(prefix: str, now: datetime) -> str:
    """Return `<prefix>_<epoch ms>_<13 random chars>`."""
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(13))
    return f"{prefix}_{millis}_{suffix}"


@dataclass
class IdentityService:
    """Owns the device id and the optional display-name session."""

    local_store: LocalStore
    clock: Callable[[], datetime] = field(default=_utcnow)
    device_id: str | None = None
    _session: UserSession | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._session = self._load_session()

    def get_or_create_device_id(self) -> str:
        """Return the persisted device id, creating it on first use."""
        if self.device_id:
            return self.device_id
        try:
            stored = self.local_store.get(DEVICE_ID_KEY)
        except OSError:
            _logger.warning("Persisted device id unreadable")
            stored = None
        if stored:
            self.device_id = stored
            return stored
        device_id = generate_id("device", self.clock())
        try:
            self.local_store.set(DEVICE_ID_KEY, device_id)
        except OSError:
            _logger.warning("Device id kept in memory only; local store unavailable")
        self.device_id = device_id
        return device_id

    def create_session(
        self, user_name: str, device_id: str | None = None
    ) -> UserSession:
        """Validate the name and persist a new session for this device."""
        reason = validate_user_name(user_name)
        if reason is not None:
            raise InvalidNameError(reason)
        session = UserSession(
            user_id=generate_id("user", self.clock()),
            user_name=user_name.strip(),
            device_id=device_id or self.get_or_create_device_id(),
            created_at=self.clock(),
        )
        self._save_session(session)
        _logger.info("User session created for %s", session.user_name)
        return session

    def update_user_name(self, new_name: str) -> bool:
        """Rename the current session, keeping its user id."""
        if self._session is None:
            return False
        reason = validate_user_name(new_name)
        if reason is not None:
            raise InvalidNameError(reason)
        self._save_session(
            UserSession(
                user_id=self._session.user_id,
                user_name=new_name.strip(),
                device_id=self._session.device_id,
                created_at=self._session.created_at,
            )
        )
        return True

    def get_current_session(self) -> UserSession | None:
        """Return the session for this device, if any."""
        return self._session

    def is_logged_in(self) -> bool:
        """Return whether a display-name session exists."""
        return self._session is not None

    def get_current_user_name(self) -> str | None:
        return self._session.user_name if self._session else None

    def get_current_user_id(self) -> str | None:
        return self._session.user_id if self._session else None

    def clear_session(self) -> None:
        """Forget the session ("logout")."""
        try:
            self.local_store.remove(USER_SESSION_KEY)
        except OSError:
            _logger.warning("Could not remove persisted user session")
        self._session = None

    def current_principal(self) -> Principal:
        """Return the attribution tag for writes made from this device."""
        session = self._session
        return Principal(
            device_id=self.get_or_create_device_id(),
            user_id=session.user_id if session else None,
            user_name=session.user_name if session else None,
        )

    def get_user_stats(self) -> UserStats:
        """Summarize the current session."""
        session = self._session
        if session is None:
            return UserStats(is_logged_in=False)
        elapsed = self.clock() - session.created_at
        return UserStats(
            is_logged_in=True,
            user_name=session.user_name,
            session_created=session.created_at,
            days_since_creation=max(elapsed.days, 0),
        )

    def _save_session(self, session: UserSession) -> None:
        try:
            write_json(
                self.local_store,
                USER_SESSION_KEY,
                {
                    "userId": session.user_id,
                    "userName": session.user_name,
                    "deviceId": session.device_id,
                    "createdAt": session.created_at.isoformat(),
                },
            )
        except OSError:
            _logger.warning("User session kept in memory only; local store unavailable")
        self._session = session

    def _load_session(self) -> UserSession | None:
        try:
            data = read_json(self.local_store, USER_SESSION_KEY)
        except OSError:
            _logger.warning("Persisted user session unreadable")
            return None
        if not isinstance(data, dict):
            return None
        try:
            return UserSession(
                user_id=str(data["userId"]),
                user_name=str(data["userName"]),
                device_id=str(data["deviceId"]),
                created_at=datetime.fromisoformat(str(data["createdAt"])),
            )
        except (KeyError, ValueError):
            _logger.warning("Ignoring malformed persisted user session")
            return None
