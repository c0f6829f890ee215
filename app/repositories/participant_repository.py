"""
Read access to participant documents.

Participants are stored one JSONB document per row, keyed by the user's
email identity. Registration writes happen elsewhere; the dashboard only reads.
"""

from pydantic import ValidationError

from app.db.helpers import fetch_all
from app.infrastructure.observability.logging import get_logger
from app.models.domain.registration_domain import Participant

logger = get_logger(__name__)


class ParticipantRepository:
    SELECT_COLUMNS = "user_id, doc, created_at, updated_at"

    @classmethod
    def _row_to_participant(cls, row: dict) -> Participant | None:
        doc = dict(row.get("doc") or {})
        doc.setdefault("userId", row["user_id"])
        doc["createdAt"] = row.get("created_at") or doc.get("createdAt")
        doc["updatedAt"] = row.get("updated_at") or doc.get("updatedAt")
        try:
            return Participant.model_validate(doc)
        except ValidationError as e:
            # One malformed document must not take the whole export down
            logger.warning("Skipping malformed participant document", user_id=row["user_id"], error=str(e))
            return None

    @classmethod
    async def list_all(cls) -> list[Participant]:
        rows = await fetch_all(
            f"SELECT {cls.SELECT_COLUMNS} FROM participants ORDER BY created_at, user_id"
        )
        participants = [cls._row_to_participant(row) for row in rows]
        return [p for p in participants if p is not None]

    @classmethod
    async def list_emails(cls) -> list[str]:
        """Distinct non-empty participant emails in registration order."""
        rows = await fetch_all(
            """
            SELECT doc->>'email' AS email
            FROM participants
            WHERE coalesce(doc->>'email', '') <> ''
            ORDER BY created_at, user_id
            """
        )
        seen: set[str] = set()
        emails: list[str] = []
        for row in rows:
            email = row["email"].strip()
            if email and email.lower() not in seen:
                seen.add(email.lower())
                emails.append(email)
        return emails
