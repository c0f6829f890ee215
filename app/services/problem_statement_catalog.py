"""
Problem statement catalog.

Static reference list of categories and problem statements, loaded once from
JSON at first use and shared read-only afterwards.
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.registration_domain import (
    CatalogRef,
    CustomRef,
    ProblemStatement,
    ProblemStatementCategory,
    ProblemStatementRef,
)

logger = get_logger(__name__)

NOT_SELECTED = "Not Selected"
NOT_AVAILABLE = "N/A"


@dataclass(frozen=True, slots=True)
class ResolvedProblemStatement:
    """Display facts for a team's problem statement selection."""

    id: str
    title: str
    category: str
    complexity: str
    is_custom: bool = False
    found: bool = True


UNSELECTED = ResolvedProblemStatement(
    id=NOT_SELECTED,
    title=NOT_SELECTED,
    category=NOT_AVAILABLE,
    complexity=NOT_AVAILABLE,
    found=False,
)


class ProblemStatementCatalog:
    def __init__(
        self,
        categories: list[ProblemStatementCategory],
        problem_statements: list[ProblemStatement],
    ):
        self.categories = list(categories)
        self.problem_statements = list(problem_statements)
        self._by_id = {statement.id: statement for statement in self.problem_statements}

    @classmethod
    def from_dict(cls, data: dict) -> "ProblemStatementCatalog":
        return cls(
            categories=[ProblemStatementCategory.model_validate(c) for c in data.get("categories", [])],
            problem_statements=[
                ProblemStatement.model_validate(p) for p in data.get("problemStatements", [])
            ],
        )

    @classmethod
    def load(cls, path: str | Path) -> "ProblemStatementCatalog":
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        catalog = cls.from_dict(data)
        logger.info(
            "Problem statement catalog loaded",
            path=str(path),
            categories=len(catalog.categories),
            problem_statements=len(catalog.problem_statements),
        )
        return catalog

    def get(self, statement_id: str) -> ProblemStatement | None:
        return self._by_id.get(statement_id)

    def search(
        self,
        category: str | None = None,
        complexity: str | None = None,
        search: str | None = None,
    ) -> list[ProblemStatement]:
        """
        Filter the catalog.

        "all" or an empty value disables the category/complexity filters. The
        free-text search is case-insensitive over title, description, theme,
        domain and tech stack.
        """
        results = self.problem_statements

        if category and category != "all":
            results = [s for s in results if s.category == category]

        if complexity and complexity != "all":
            results = [s for s in results if s.complexity == complexity]

        if search:
            needle = search.lower()
            results = [s for s in results if _matches(s, needle)]

        return results

    def resolve(self, ref: ProblemStatementRef | None) -> ResolvedProblemStatement:
        match ref:
            case None:
                return UNSELECTED
            case CustomRef(id=ref_id, title=title, category=category):
                return ResolvedProblemStatement(
                    id=ref_id,
                    title=title,
                    category=category,
                    complexity=NOT_AVAILABLE,
                    is_custom=True,
                )
            case CatalogRef(id=ref_id):
                statement = self.get(ref_id)
                if statement is None:
                    return ResolvedProblemStatement(
                        id=ref_id,
                        title=f"Unknown ({ref_id})",
                        category=NOT_AVAILABLE,
                        complexity=NOT_AVAILABLE,
                        found=False,
                    )
                return ResolvedProblemStatement(
                    id=statement.id,
                    title=statement.title,
                    category=statement.category,
                    complexity=statement.complexity,
                )


def _matches(statement: ProblemStatement, needle: str) -> bool:
    return (
        needle in statement.title.lower()
        or needle in statement.description.lower()
        or needle in statement.theme.lower()
        or needle in statement.domain.lower()
        or any(needle in tech.lower() for tech in statement.tech_stack)
    )


@lru_cache(maxsize=1)
def get_catalog() -> ProblemStatementCatalog:
    return ProblemStatementCatalog.load(settings.PROBLEM_STATEMENTS_PATH)
