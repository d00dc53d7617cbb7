"""Unit tests for the SendGrid email helper utilities."""

from __future__ import annotations

import json
import types

import pytest

from app.config import Settings
from app.infrastructure import email as email_module

pytestmark = pytest.mark.anyio

CONFIGURED = Settings(
    secret_key="test-secret",
    sendgrid_api_key="SG.fake",
    sendgrid_sender="sender@example.com",
)


class _RecordingClient:
    """Stand-in for ``SendGridAPIClient`` returning a canned response."""

    response = types.SimpleNamespace(status_code=202, body=None, headers={"X-Message-Id": "abc123"})
    sent: list = []

    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, message):
        type(self).sent.append(message)
        return type(self).response


@pytest.fixture
def client_class(monkeypatch: pytest.MonkeyPatch):
    class Client(_RecordingClient):
        sent: list = []

    monkeypatch.setattr(email_module, "SendGridAPIClient", Client)
    return Client


def test_send_email_without_configuration(client_class) -> None:
    """When SendGrid settings are missing the helper should exit early."""

    settings = Settings(secret_key="test-secret")

    result = email_module.send_email("Subject", "<p>Body</p>", "user@example.com", settings=settings)

    assert result.success is False
    assert result.error == "email delivery is not configured"
    assert client_class.sent == []


def test_send_email_success_returns_message_id(client_class) -> None:
    result = email_module.send_email(
        "Subject", "<p>Body</p>", "user@example.com", settings=CONFIGURED
    )

    assert result.success is True
    assert result.message_id == "abc123"
    assert len(client_class.sent) == 1


def test_send_email_reports_unsuccessful_status(client_class, caplog) -> None:
    client_class.response = types.SimpleNamespace(
        status_code=400,
        body=json.dumps({"errors": [{"message": "Invalid recipient"}]}),
        headers={},
    )

    with caplog.at_level("ERROR"):
        result = email_module.send_email(
            "Subject", "<p>Body</p>", "user@example.com", settings=CONFIGURED
        )

    assert result.success is False
    assert result.error == "SendGrid responded with status 400: Invalid recipient"
    assert "status 400" in caplog.text


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {
                "errors": [
                    {
                        "message": "The provided authorization grant is invalid.",
                        "help": "https://sendgrid.com/docs/API_Reference/Web_API_v3/How_To_Use_The_Web_API_v3/authentication.html",
                    }
                ]
            }
        ).encode()

    class FailingClient(_RecordingClient):
        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        result = email_module.send_email(
            "Subject", "<p>Body</p>", "user@example.com", settings=CONFIGURED
        )

    assert result.success is False
    assert "authorization grant is invalid" in result.error
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_extract_error_details_handles_plain_text() -> None:
    assert email_module._extract_sendgrid_error_details(b"  gateway timeout ") == "gateway timeout"
    assert email_module._extract_sendgrid_error_details("") is None


async def test_sender_runs_send_on_worker_thread(client_class) -> None:
    sender = email_module.SendGridEmailSender(CONFIGURED)

    result = await sender.send(
        "user@example.com", "Subject", "<p>Body</p>", {"notification_id": "n1"}
    )

    assert result.success is True
    assert result.message_id == "abc123"
    assert len(client_class.sent) == 1
