"""
Problem statement catalog routes (read-only, no authentication).
"""

from fastapi import APIRouter, HTTPException, Query, status

from app.infrastructure.observability.logging import get_logger
from app.models.api.problem_statement_request import ProblemStatementIdRequest
from app.services.problem_statement_catalog import get_catalog

logger = get_logger(__name__)

router = APIRouter(prefix="/problem-statements", tags=["problem-statements"])


@router.get("")
async def list_problem_statements(
    category: str | None = Query(default=None, description="Category name or 'all'"),
    complexity: str | None = Query(default=None, description="Low, Medium, High or 'all'"),
    search: str | None = Query(default=None, description="Free-text search"),
):
    catalog = get_catalog()
    statements = catalog.search(category=category, complexity=complexity, search=search)

    return {
        "categories": [c.model_dump() for c in catalog.categories],
        "problemStatements": [s.model_dump(by_alias=True) for s in statements],
        "total": len(statements),
    }


@router.post("")
async def get_problem_statement(body: ProblemStatementIdRequest):
    statement = get_catalog().get(body.problem_statement_id)
    if statement is None:
        logger.warning("Problem statement lookup missed", problem_statement_id=body.problem_statement_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Problem statement not found")

    return {
        "message": "Problem statement retrieved successfully",
        "problemStatement": statement.model_dump(by_alias=True),
    }
