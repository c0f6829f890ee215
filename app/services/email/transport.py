"""
Shared SMTP transport.

One transport per process, built on first use by get_or_create_transport()
and reused by every broadcast and notification. The transport keeps a single
aiosmtplib connection open and serializes sends over it, reconnecting when
the server has dropped the session.

Usage:
    from app.services.email.transport import get_or_create_transport

    transport = get_or_create_transport()  # raises MailTransportConfigurationError
    report = await transport.send(message, ["a@example.com", "b@example.com"])
"""

import asyncio
import threading
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.broadcast_domain import SendReport

logger = get_logger(__name__)


class MailTransportConfigurationError(RuntimeError):
    """Required SMTP settings are missing; nothing can be sent."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing SMTP configuration ({', '.join(missing)})")

    @property
    def suggestion(self) -> str:
        return (
            f"Set {', '.join(self.missing)} in the environment or .env.local "
            "and restart the service."
        )


class MailTransport(Protocol):
    sender: str

    async def send(self, message: EmailMessage, recipients: list[str]) -> SendReport | None: ...


class SmtpMailTransport:
    """aiosmtplib-backed transport holding one reusable SMTP session."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self._client = aiosmtplib.SMTP(
            hostname=host,
            port=port,
            username=username,
            password=password,
            use_tls=port == 465,
            timeout=timeout,
        )
        self._lock = asyncio.Lock()

    async def _ensure_connected(self) -> None:
        if self._client.is_connected:
            return
        logger.info("Opening SMTP connection", host=self.host, port=self.port)
        await self._client.connect()

    async def send(self, message: EmailMessage, recipients: list[str]) -> SendReport:
        """
        Send one message to the given envelope recipients.

        Recipients are passed to the SMTP envelope only, so headers decide
        what each recipient sees.
        """
        async with self._lock:
            await self._ensure_connected()
            refused, _response = await self._client.send_message(message, recipients=recipients)

        rejected = [address for address in recipients if address in refused]
        accepted = [address for address in recipients if address not in refused]
        return SendReport(accepted=accepted, rejected=rejected)

    async def close(self) -> None:
        async with self._lock:
            if self._client.is_connected:
                try:
                    await self._client.quit()
                except aiosmtplib.SMTPException as e:
                    logger.warning("SMTP quit failed, closing socket", error=str(e))
                    self._client.close()


_transport: SmtpMailTransport | None = None
_transport_lock = threading.Lock()


def build_transport() -> SmtpMailTransport:
    missing = settings.missing_smtp_settings()
    if missing:
        raise MailTransportConfigurationError(missing)

    return SmtpMailTransport(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASS,
        sender=settings.SMTP_FROM,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )


def get_or_create_transport() -> SmtpMailTransport:
    """Return the process-wide transport, building it on first use."""
    global _transport

    if _transport is not None:
        return _transport

    with _transport_lock:
        if _transport is None:
            _transport = build_transport()
            logger.info("SMTP transport created", host=_transport.host, port=_transport.port)
    return _transport


async def close_transport() -> None:
    global _transport

    with _transport_lock:
        transport, _transport = _transport, None

    if transport is not None:
        await transport.close()
        logger.info("SMTP transport closed")
