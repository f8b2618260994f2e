"""Domain models for photographer notifications."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EmailConfig:
    """Device-local notification preferences."""

    photographer_email: str = ""
    photographer_name: str = "Photographe"
    from_name: str = "Galerie Photo"
    subject: str = ""
    reply_to: str = ""
    enable_notifications: bool = True


@dataclass(frozen=True)
class SelectionNotification:
    """Data needed to tell the photographer about a new selection."""

    gallery_id: str
    gallery_name: str
    selection_type: str
    selection_count: int
    download_url: str
    file_name: str
    export_date: str
    gallery_url: str
    photo_names: list[str] = field(default_factory=list)
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None


@dataclass(frozen=True)
class EmailContent:
    """Rendered notification email."""

    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class EmailMessage:
    """Payload handed to the email transport."""

    to: str
    from_address: str
    subject: str
    html: str
    text: str
    reply_to: str | None = None


@dataclass(frozen=True)
class EmailSendResult:
    """Outcome reported by the email transport."""

    message_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.message_id is not None
