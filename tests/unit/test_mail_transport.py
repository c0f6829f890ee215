import threading
from email.message import EmailMessage
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.config import settings
from app.services.email import transport as transport_module
from app.services.email.transport import (
    MailTransportConfigurationError,
    SmtpMailTransport,
    build_transport,
    close_transport,
    get_or_create_transport,
)


@pytest.fixture(autouse=True)
def reset_transport(monkeypatch):
    monkeypatch.setattr(transport_module, "_transport", None)
    yield
    transport_module._transport = None


@pytest.fixture
def smtp_settings(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(settings, "SMTP_USER", "mailer")
    monkeypatch.setattr(settings, "SMTP_PASS", "secret")
    monkeypatch.setattr(settings, "SMTP_PORT", 587)


def _message() -> EmailMessage:
    message = EmailMessage()
    message["From"] = "org@x.com"
    message["To"] = "org@x.com"
    message["Subject"] = "Hi"
    message.set_content("Body")
    return message


def test_build_transport_reports_missing_settings(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_HOST", None)
    monkeypatch.setattr(settings, "SMTP_USER", "mailer")
    monkeypatch.setattr(settings, "SMTP_PASS", None)

    with pytest.raises(MailTransportConfigurationError) as exc_info:
        build_transport()

    assert exc_info.value.missing == ["SMTP_HOST", "SMTP_PASS"]
    assert "SMTP_HOST" in str(exc_info.value)
    assert "SMTP_PASS" in exc_info.value.suggestion


def test_failed_build_is_not_cached(monkeypatch, smtp_settings):
    monkeypatch.setattr(settings, "SMTP_HOST", None)
    with pytest.raises(MailTransportConfigurationError):
        get_or_create_transport()

    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    assert get_or_create_transport().host == "smtp.example.com"


def test_transport_is_built_once_and_reused(smtp_settings):
    first = get_or_create_transport()
    second = get_or_create_transport()

    assert first is second
    assert first.sender == settings.SMTP_FROM


def test_concurrent_first_use_builds_a_single_transport(monkeypatch, smtp_settings):
    built = []
    real_build = transport_module.build_transport

    def counting_build():
        built.append(1)
        return real_build()

    monkeypatch.setattr(transport_module, "build_transport", counting_build)

    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(get_or_create_transport())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(built) == 1
    assert len({id(result) for result in results}) == 1


@pytest.mark.asyncio
async def test_send_connects_once_and_reports_refused_recipients():
    transport = SmtpMailTransport("smtp.example.com", 587, "mailer", "secret", "org@x.com")
    client = MagicMock()
    client.is_connected = False
    client.connect = AsyncMock(side_effect=lambda: setattr(client, "is_connected", True))
    client.send_message = AsyncMock(return_value=({"b@x.com": (550, "No such user")}, "OK"))
    transport._client = client

    report = await transport.send(_message(), ["a@x.com", "b@x.com", "c@x.com"])
    await transport.send(_message(), ["a@x.com"])

    client.connect.assert_awaited_once()
    assert client.send_message.await_count == 2
    assert client.send_message.await_args_list[0].kwargs["recipients"] == ["a@x.com", "b@x.com", "c@x.com"]
    assert report.accepted == ["a@x.com", "c@x.com"]
    assert report.rejected == ["b@x.com"]


@pytest.mark.asyncio
async def test_send_reconnects_after_server_dropped_session():
    transport = SmtpMailTransport("smtp.example.com", 587, "mailer", "secret", "org@x.com")
    client = MagicMock()
    client.is_connected = False
    client.connect = AsyncMock()
    client.send_message = AsyncMock(return_value=({}, "OK"))
    transport._client = client

    await transport.send(_message(), ["a@x.com"])
    await transport.send(_message(), ["a@x.com"])

    assert client.connect.await_count == 2


@pytest.mark.asyncio
async def test_send_errors_propagate():
    transport = SmtpMailTransport("smtp.example.com", 587, "mailer", "secret", "org@x.com")
    client = MagicMock()
    client.is_connected = True
    client.send_message = AsyncMock(side_effect=ConnectionError("relay down"))
    transport._client = client

    with pytest.raises(ConnectionError):
        await transport.send(_message(), ["a@x.com"])


@pytest.mark.asyncio
async def test_close_transport_quits_and_forgets_instance(smtp_settings):
    transport = get_or_create_transport()
    client = MagicMock()
    client.is_connected = True
    client.quit = AsyncMock()
    transport._client = client

    await close_transport()

    client.quit.assert_awaited_once()
    assert transport_module._transport is None
