"""
Access to team documents.

Teams are stored as JSONB documents keyed by their unique name. Only the
problem statement selection is written from this service.
"""

from psycopg.types.json import Jsonb
from pydantic import ValidationError

from app.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one
from app.infrastructure.observability.logging import get_logger
from app.models.domain.registration_domain import ProblemStatementRef, Team

logger = get_logger(__name__)


class TeamRepositoryError(DatabaseError):
    """More specific exception for team persistence failures."""


class TeamRepository:
    SELECT_COLUMNS = "name, invite_code, doc, created_at, updated_at"

    @classmethod
    def _row_to_team(cls, row: dict | None) -> Team | None:
        if not row:
            return None

        doc = dict(row.get("doc") or {})
        doc["name"] = row["name"]
        doc["inviteCode"] = row.get("invite_code") or doc.get("inviteCode", "")
        doc["createdAt"] = row.get("created_at") or doc.get("createdAt")
        doc["updatedAt"] = row.get("updated_at") or doc.get("updatedAt")
        try:
            return Team.model_validate(doc)
        except ValidationError as e:
            logger.warning("Skipping malformed team document", team=row["name"], error=str(e))
            return None

    @classmethod
    async def list_all(cls) -> list[Team]:
        rows = await fetch_all(f"SELECT {cls.SELECT_COLUMNS} FROM teams ORDER BY created_at, name")
        teams = [cls._row_to_team(row) for row in rows]
        return [t for t in teams if t is not None]

    @classmethod
    async def find_by_member(cls, user_id: str) -> Team | None:
        """Team the user leads or belongs to."""
        row = await fetch_one(
            f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM teams
            WHERE doc->>'leaderUserId' = %s OR doc->'memberUserIds' ? %s
            ORDER BY (doc->>'leaderUserId' = %s) DESC
            LIMIT 1
            """,
            (user_id, user_id, user_id),
        )
        return cls._row_to_team(row)

    @classmethod
    async def find_by_leader(cls, user_id: str) -> Team | None:
        row = await fetch_one(
            f"SELECT {cls.SELECT_COLUMNS} FROM teams WHERE doc->>'leaderUserId' = %s LIMIT 1",
            (user_id,),
        )
        return cls._row_to_team(row)

    @classmethod
    async def set_problem_statement(cls, team_name: str, ref: ProblemStatementRef | None) -> None:
        """Store (or clear, with None) the team's problem statement selection."""
        updated = await execute_query(
            """
            UPDATE teams
            SET doc = jsonb_set(doc, '{problemStatement}', %s::jsonb, true),
                updated_at = now()
            WHERE name = %s
            """,
            (Jsonb(ref.storage_id if ref else None), team_name),
        )
        if updated == 0:
            raise TeamRepositoryError(f"Team not found: {team_name}", operation="set_problem_statement")

        logger.info(
            "Team problem statement updated",
            team=team_name,
            problem_statement=ref.storage_id if ref else None,
        )
