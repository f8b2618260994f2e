"""HTTP email transport adapter."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from gallery_selection.domain.email import EmailMessage, EmailSendResult

_logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    """Interface for handing an email to the sending service."""

    async def send_email(self, message: EmailMessage) -> EmailSendResult:
        """Send an email and report the provider message id or an error."""


@dataclass
class HttpxEmailTransport(EmailTransport):
    """Email transport that posts to a JSON sending endpoint."""

    endpoint_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, endpoint_url: str) -> "HttpxEmailTransport":
        """Create a transport with a managed httpx session."""
        return cls(endpoint_url=endpoint_url, http_client=httpx.AsyncClient())

    async def send_email(self, message: EmailMessage) -> EmailSendResult:
        """POST the message and read back the message id."""
        payload: dict[str, object] = {
            "to": message.to,
            "from": message.from_address,
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        if message.reply_to:
            payload["replyTo"] = message.reply_to
        try:
            response = await self.http_client.post(
                self.endpoint_url, json=payload, timeout=15
            )
        except httpx.HTTPError as exc:
            _logger.warning("Email endpoint unreachable: %s", exc)
            return EmailSendResult(error="Erreur réseau lors de l'envoi de l'email")
        body = _json_body(response)
        if response.is_error:
            error = body.get("error") or f"HTTP {response.status_code}"
            return EmailSendResult(error=str(error))
        message_id = body.get("messageId")
        if not message_id:
            return EmailSendResult(error="Réponse du service email invalide")
        return EmailSendResult(message_id=str(message_id))

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


@dataclass
class DisabledEmailTransport(EmailTransport):
    """Transport used when no sending endpoint is configured."""

    async def send_email(self, message: EmailMessage) -> EmailSendResult:
        """Report that email sending is not configured."""
        return EmailSendResult(error="Service email non configuré")

    async def close(self) -> None:
        """Nothing to release."""


def _json_body(response: httpx.Response) -> dict[str, object]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
