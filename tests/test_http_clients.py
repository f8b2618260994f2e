"""Tests for HTTP-based adapters."""

import asyncio
import json

import httpx

from gallery_selection.adapters.email_transport import (
    DisabledEmailTransport,
    HttpxEmailTransport,
)
from gallery_selection.domain.email import EmailMessage

_MESSAGE = EmailMessage(
    to="photo@example.test",
    from_address="galerie@example.test",
    subject="Nouvelle sélection client - Mariage",
    html="<p>Bonjour</p>",
    text="Bonjour",
    reply_to="contact@example.test",
)


def _transport(handler) -> HttpxEmailTransport:  # type: ignore[no-untyped-def]
    async_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxEmailTransport(
        endpoint_url="https://mail.example.test/send", http_client=async_client
    )


def test_email_transport_posts_json_and_reads_message_id() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "messageId": "abc-123"})

    transport = _transport(handler)

    result = asyncio.run(transport.send_email(_MESSAGE))

    assert result.ok
    assert result.message_id == "abc-123"
    assert captured["url"] == "https://mail.example.test/send"
    assert captured["body"] == {
        "to": "photo@example.test",
        "from": "galerie@example.test",
        "subject": "Nouvelle sélection client - Mariage",
        "html": "<p>Bonjour</p>",
        "text": "Bonjour",
        "replyTo": "contact@example.test",
    }
    asyncio.run(transport.close())


def test_email_transport_reports_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Adresse refusée"})

    result = asyncio.run(_transport(handler).send_email(_MESSAGE))

    assert not result.ok
    assert result.error == "Adresse refusée"


def test_email_transport_reports_status_without_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    result = asyncio.run(_transport(handler).send_email(_MESSAGE))

    assert result.error == "HTTP 502"


def test_email_transport_rejects_response_without_message_id() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True})

    result = asyncio.run(_transport(handler).send_email(_MESSAGE))

    assert result.error == "Réponse du service email invalide"


def test_email_transport_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    result = asyncio.run(_transport(handler).send_email(_MESSAGE))

    assert result.message_id is None
    assert result.error == "Erreur réseau lors de l'envoi de l'email"


def test_disabled_transport() -> None:
    transport = DisabledEmailTransport()

    result = asyncio.run(transport.send_email(_MESSAGE))

    assert result.error == "Service email non configuré"
