from dataclasses import dataclass
from enum import StrEnum


class ExportFormat(StrEnum):
    EXCEL = "excel"
    CSV = "csv"
    JSON = "json"


class ExportScope(StrEnum):
    ALL = "all"
    PARTICIPANTS = "participants"
    TEAMS = "teams"
    ANALYTICS = "analytics"

    def includes(self, view: str) -> bool:
        return self is ExportScope.ALL or self.value == view


FILE_EXTENSIONS = {
    ExportFormat.EXCEL: "xlsx",
    ExportFormat.CSV: "csv",
    ExportFormat.JSON: "json",
}

MEDIA_TYPES = {
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
}


@dataclass(slots=True)
class TeamMembership:
    """Team facts attached to each participant row."""

    team_name: str
    role: str  # "Leader" or "Member"
    size: int
    is_complete: bool
    problem_statement_id: str
    problem_statement_title: str


@dataclass(slots=True)
class ExportViews:
    """Flattened report tables. Views not selected by the scope are None."""

    summary: dict
    participants: list[dict] | None = None
    teams: list[dict] | None = None
    analytics: list[dict] | None = None


@dataclass(slots=True)
class ExportDocument:
    content: bytes
    media_type: str
    filename: str
