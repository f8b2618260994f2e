"""Photographer notification emails."""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from gallery_selection.adapters.email_transport import EmailTransport
from gallery_selection.domain.email import (
    EmailConfig,
    EmailContent,
    EmailMessage,
    SelectionNotification,
)
from gallery_selection.domain.selection import NotificationResult, ValidationResult
from gallery_selection.services.local_store import LocalStore, read_json, write_json
from gallery_selection.services.validation import is_valid_email

EMAIL_CONFIG_KEY = "email-config"
PREVIEW_LIMIT = 20

_SELECTION_LABELS = {
    "personal": "Sélection personnelle",
    "complete": "Sélection complète",
}
_CONFIG_FIELDS = {
    "photographer_email": "photographerEmail",
    "photographer_name": "photographerName",
    "from_name": "fromName",
    "subject": "subject",
    "reply_to": "replyTo",
    "enable_notifications": "enableNotifications",
}

_templates_dir = Path(__file__).resolve().parent.parent / "templates"
_jinja_env = Environment(
    loader=FileSystemLoader(str(_templates_dir)),
    autoescape=select_autoescape(["html", "xml"]),
)

_logger = logging.getLogger(__name__)


@dataclass
class EmailService:
    """Builds and sends selection notifications to the photographer."""

    local_store: LocalStore
    transport: EmailTransport
    from_address: str

    def get_config(self) -> EmailConfig | None:
        """Return the device-local notification settings, if saved."""
        data = read_json(self.local_store, EMAIL_CONFIG_KEY)
        if not isinstance(data, dict):
            return None
        defaults = EmailConfig()
        values = {
            attr: data.get(key, getattr(defaults, attr))
            for attr, key in _CONFIG_FIELDS.items()
        }
        values["enable_notifications"] = values["enable_notifications"] is True
        return EmailConfig(**values)

    def save_config(self, config: EmailConfig) -> bool:
        """Persist notification settings on this device."""
        payload = {key: getattr(config, attr) for attr, key in _CONFIG_FIELDS.items()}
        try:
            write_json(self.local_store, EMAIL_CONFIG_KEY, payload)
        except OSError:
            _logger.exception("Failed to save email configuration")
            return False
        _logger.info("Email configuration saved")
        return True

    def validate_config(self, config: EmailConfig) -> ValidationResult:
        """Check the photographer and reply-to addresses."""
        errors: list[str] = []
        if not config.photographer_email.strip():
            errors.append("Email du photographe requis")
        elif not is_valid_email(config.photographer_email):
            errors.append("Format d'email du photographe invalide")
        if config.reply_to.strip() and not is_valid_email(config.reply_to):
            errors.append("Format d'email de réponse invalide")
        return ValidationResult(errors=errors)

    def is_configured(self) -> bool:
        config = self.get_config()
        return bool(
            config and config.photographer_email and config.enable_notifications
        )

    def build_selection_email(
        self, notification: SelectionNotification, config: EmailConfig | None = None
    ) -> EmailContent:
        """Render the subject, HTML and text bodies for a notification."""
        resolved = config or self.get_config() or EmailConfig()
        if resolved.subject.strip():
            subject = resolved.subject.replace(
                "{{galleryName}}", notification.gallery_name
            )
        else:
            subject = f"Nouvelle sélection client - {notification.gallery_name}"
        context = {
            "n": notification,
            "subject": subject,
            "photographer_name": resolved.photographer_name or "Photographe",
            "from_name": resolved.from_name or "Galerie Photo",
            "selection_label": _SELECTION_LABELS.get(
                notification.selection_type, notification.selection_type
            ),
            "preview": notification.photo_names[:PREVIEW_LIMIT],
            "remaining": max(len(notification.photo_names) - PREVIEW_LIMIT, 0),
        }
        return EmailContent(
            subject=subject,
            html=_jinja_env.get_template("selection_email.html").render(**context),
            text=_jinja_env.get_template("selection_email.txt").render(**context),
        )

    async def send_selection_notification(
        self, notification: SelectionNotification
    ) -> NotificationResult:
        """Send the notification if enabled; failures are reported, not raised."""
        config = self.get_config()
        if config is None or not config.enable_notifications:
            _logger.info("Email notifications are disabled")
            return NotificationResult(sent=False, skipped_reason="disabled")
        if not config.photographer_email:
            return NotificationResult(sent=False, skipped_reason="not-configured")

        content = self.build_selection_email(notification, config)
        message = EmailMessage(
            to=config.photographer_email,
            from_address=self.from_address,
            subject=content.subject,
            html=content.html,
            text=content.text,
            reply_to=config.reply_to or None,
        )
        result = await self.transport.send_email(message)
        if not result.ok:
            _logger.warning(
                "Selection email for %s failed: %s",
                notification.gallery_id,
                result.error,
            )
            return NotificationResult(sent=False, error=result.error)
        _logger.info("Selection email sent: %s", result.message_id)
        return NotificationResult(sent=True, message_id=result.message_id)


def config_to_dict(config: EmailConfig) -> dict[str, object]:
    """Serialize a config for API responses."""
    return asdict(config)
