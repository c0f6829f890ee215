"""Single-recipient notifications sent through the shared transport."""

from collections.abc import Callable
from email.message import EmailMessage

from app.infrastructure.observability.logging import get_logger
from app.services.email.transport import MailTransport, get_or_create_transport

logger = get_logger(__name__)

REGISTRATION_SUBJECT = "SIH Internals (UCEK) - Registration Confirmed"


def registration_body(name: str | None) -> str:
    return (
        f"Hi {name or ''},\n\n"
        "Your registration for Smart India Hackathon - Internals (UCEK) is confirmed.\n\n"
        "We will share updates and announcements via email.\n"
        "Thank you and good luck!\n\n"
        "- Organizing Team"
    )


async def send_registration_email(
    to: str,
    name: str | None = None,
    transport_factory: Callable[[], MailTransport] | None = None,
) -> None:
    """Send the registration confirmation. Transport errors propagate."""
    transport = (transport_factory or get_or_create_transport)()

    message = EmailMessage()
    message["From"] = transport.sender
    message["To"] = to
    message["Subject"] = REGISTRATION_SUBJECT
    message.set_content(registration_body(name))

    await transport.send(message, [to])
    logger.info("Registration email sent", recipient_domain=to.rsplit("@", 1)[-1])
