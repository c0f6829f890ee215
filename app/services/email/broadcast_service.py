"""
Broadcast Service - BCC-only batched email to many recipients.

Recipients are split into consecutive batches and each batch goes out as a
single message. The visible To header carries only the sender; the batch
travels in the SMTP envelope, so no recipient sees another's address.

Batches are sent strictly one after another. A failed batch is recorded in
the result and the next batch is still attempted.

Usage:
    from app.services.email.broadcast_service import broadcast_dispatcher

    result = await broadcast_dispatcher.dispatch(
        recipients, subject="Round 2 results", text_body="...",
        options=BroadcastOptions(chunk_size=50, delay_ms=500),
    )
"""

import asyncio
from collections.abc import Awaitable, Callable
from email.message import EmailMessage

from app.infrastructure.observability.logging import get_logger
from app.models.domain.broadcast_domain import BroadcastOptions, BroadcastResult
from app.services.email.transport import MailTransport, get_or_create_transport

logger = get_logger(__name__)


def chunk_recipients(recipients: list[str], chunk_size: int) -> list[list[str]]:
    """Consecutive slices of at most chunk_size, in original order."""
    size = max(1, chunk_size)
    return [recipients[i : i + size] for i in range(0, len(recipients), size)]


def build_broadcast_message(
    sender: str,
    subject: str,
    text_body: str,
    html: str | None = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    # Only the sender is visible; real recipients are envelope-only
    message["To"] = sender
    message["Subject"] = subject
    message.set_content(text_body)
    if html:
        message.add_alternative(html, subtype="html")
    return message


class BroadcastDispatcher:
    """Sends one subject/body to a recipient list in sequential BCC batches."""

    def __init__(
        self,
        transport_factory: Callable[[], MailTransport] = get_or_create_transport,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._transport_factory = transport_factory
        self._sleep = sleep

    async def dispatch(
        self,
        recipients: list[str],
        subject: str,
        text_body: str,
        options: BroadcastOptions | None = None,
    ) -> BroadcastResult:
        """
        Send the broadcast and return the aggregate outcome.

        Args:
            recipients: Addresses in the order they should be batched
            subject: Message subject (validated by the caller)
            text_body: Plain text body (validated by the caller)
            options: Chunk size, inter-batch delay, HTML body, sender override

        Returns:
            BroadcastResult with accepted/rejected counts and per-batch errors

        Raises:
            MailTransportConfigurationError: transport cannot be built; raised
                before any batch is attempted
        """
        options = options or BroadcastOptions()

        if not recipients:
            logger.info("Broadcast skipped, no recipients")
            return BroadcastResult()

        transport = self._transport_factory()
        sender = options.from_override or transport.sender
        batches = chunk_recipients(recipients, options.chunk_size)
        result = BroadcastResult(total_recipients=len(recipients), batches=len(batches))

        logger.info(
            "Broadcast started",
            total_recipients=result.total_recipients,
            batches=result.batches,
            chunk_size=options.chunk_size,
            delay_ms=options.delay_ms,
        )

        for index, batch in enumerate(batches):
            message = build_broadcast_message(sender, subject, text_body, options.html)
            try:
                report = await transport.send(message, batch)
            except Exception as e:
                result.failed_batches += 1
                result.errors.append(str(e) or type(e).__name__)
                logger.warning(
                    "Broadcast batch failed",
                    batch_index=index,
                    batch_size=len(batch),
                    error=str(e),
                    error_type=type(e).__name__,
                )
            else:
                if report is None:
                    result.accepted += len(batch)
                else:
                    result.accepted += len(report.accepted)
                    result.rejected += len(report.rejected)

            if options.delay_ms > 0 and index < len(batches) - 1:
                await self._sleep(options.delay_ms / 1000)

        logger.info(
            "Broadcast finished",
            total_recipients=result.total_recipients,
            batches=result.batches,
            accepted=result.accepted,
            rejected=result.rejected,
            failed_batches=result.failed_batches,
        )
        return result


# Global instance
broadcast_dispatcher = BroadcastDispatcher()
