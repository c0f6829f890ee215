"""
Team problem statement routes.

Any member can read the team's selection; only the leader can change or
clear it. Catalog ids are validated, CUSTOM_ ids are accepted as-is.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.verify import auth_dependency, caller_email
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.api.problem_statement_request import ProblemStatementIdRequest
from app.models.domain.registration_domain import (
    CatalogRef,
    ProblemStatementRef,
    Team,
    parse_problem_statement_ref,
)
from app.repositories.team_repository import TeamRepository
from app.services.problem_statement_catalog import get_catalog
from app.services.team_capacity import compute_team_capacity

logger = get_logger(__name__)

router = APIRouter(prefix="/team", tags=["team"])


def _require_email(claims: dict) -> str:
    email = caller_email(claims)
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return email


def _problem_statement_details(team: Team) -> dict | None:
    if team.problem_statement is None:
        return None
    catalog = get_catalog()
    resolved = catalog.resolve(team.problem_statement)
    if isinstance(team.problem_statement, CatalogRef) and resolved.found:
        return catalog.get(resolved.id).model_dump(by_alias=True)
    return {
        "id": resolved.id,
        "title": resolved.title,
        "category": resolved.category,
        "isCustom": resolved.is_custom,
    }


def _team_payload(team: Team, email: str) -> dict:
    capacity = compute_team_capacity(team)
    return {
        "name": team.name,
        "problemStatement": team.problem_statement.storage_id if team.problem_statement else None,
        "problemStatementDetails": _problem_statement_details(team),
        "isLeader": team.leader_user_id == email,
        "size": capacity.size,
        "isComplete": capacity.is_complete,
        "spotsAvailable": capacity.spots_available,
    }


def _store_failure(action: str, email: str, error: DatabaseError) -> HTTPException:
    logger.error("Team store operation failed", action=action, user=email, error=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}, please retry",
    )


async def _leader_team(email: str, action: str) -> Team:
    try:
        team = await TeamRepository.find_by_leader(email)
    except DatabaseError as e:
        raise _store_failure(action, email, e) from e
    if team is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Team not found or you are not the team leader",
        )
    return team


async def _store_selection(team: Team, ref: ProblemStatementRef | None, email: str, action: str) -> None:
    try:
        await TeamRepository.set_problem_statement(team.name, ref)
    except DatabaseError as e:
        raise _store_failure(action, email, e) from e
    team.problem_statement = ref


@router.get("/problem-statement")
async def get_team_problem_statement(claims: dict = Depends(auth_dependency)):
    email = _require_email(claims)

    try:
        team = await TeamRepository.find_by_member(email)
    except DatabaseError as e:
        raise _store_failure("load team", email, e) from e
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")

    return {"team": _team_payload(team, email)}


@router.post("/problem-statement")
async def set_team_problem_statement(
    body: ProblemStatementIdRequest,
    claims: dict = Depends(auth_dependency),
):
    email = _require_email(claims)

    ref = parse_problem_statement_ref(body.problem_statement_id)
    if isinstance(ref, CatalogRef) and get_catalog().get(ref.id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid problem statement ID")

    team = await _leader_team(email, "update problem statement")
    await _store_selection(team, ref, email, "update problem statement")

    return {"message": "Problem statement updated successfully", "team": _team_payload(team, email)}


@router.delete("/problem-statement")
async def clear_team_problem_statement(claims: dict = Depends(auth_dependency)):
    email = _require_email(claims)

    team = await _leader_team(email, "remove problem statement")
    await _store_selection(team, None, email, "remove problem statement")

    return {
        "message": "Problem statement selection removed successfully",
        "team": _team_payload(team, email),
    }
