"""
Export Service - organizer data export.

Joins participant and team documents into flat report views and serializes
them for download.

Views:
- participants: one row per participant with team facts and every dynamic
  registration field (sorted union of keys, missing answers as "")
- teams: one row per team with resolved leader/member names and capacity
- analytics: {category, metric, value, percentage} distribution rows
- summary: single row of totals plus export metadata, always included

Usage:
    from app.services.export.export_service import export_service

    document = await export_service.export(ExportScope.ALL, ExportFormat.CSV)
    # document.content, document.media_type, document.filename

The transformation itself (build_views / build_export) is pure and
synchronous; only the document reads are awaited.
"""

from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from app.infrastructure.observability.logging import get_logger
from app.models.domain.export_domain import (
    FILE_EXTENSIONS,
    MEDIA_TYPES,
    ExportDocument,
    ExportFormat,
    ExportScope,
    ExportViews,
    TeamMembership,
)
from app.models.domain.registration_domain import MAX_TEAM_SIZE, Participant, Team
from app.repositories.participant_repository import ParticipantRepository
from app.repositories.team_repository import TeamRepository
from app.services.export import serializers
from app.services.problem_statement_catalog import (
    NOT_SELECTED,
    ProblemStatementCatalog,
    get_catalog,
)
from app.services.team_capacity import compute_team_capacity

logger = get_logger(__name__)

NO_TEAM = "No Team"
NO_ROLE = "No Role"
NOT_SPECIFIED = "Not Specified"
RECENT_WINDOW = timedelta(days=7)

# Participant `fields` keys grouped in the analytics view, with display label
DEFAULT_DEMOGRAPHIC_FIELDS: tuple[tuple[str, str], ...] = (
    ("department", "Department Distribution"),
    ("year", "Year Distribution"),
)


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def percentage(value: int, total: int) -> str:
    if total <= 0:
        return "0.0%"
    return f"{value / total * 100:.1f}%"


def field_value(participant: Participant, key: str) -> str:
    """Dynamic field lookup, case-insensitive on the key. Blank answers count as missing."""
    for name, value in participant.fields.items():
        if name.lower() == key.lower() and value is not None and str(value).strip():
            return str(value).strip()
    return ""


# =======================================================================
# Join
# =======================================================================


def build_membership_lookup(
    teams: Sequence[Team], catalog: ProblemStatementCatalog
) -> dict[str, TeamMembership]:
    """Map user id to the team they lead or belong to. A leader role is never overwritten."""
    lookup: dict[str, TeamMembership] = {}

    for team in teams:
        capacity = compute_team_capacity(team)
        resolved = catalog.resolve(team.problem_statement)

        def membership(role: str) -> TeamMembership:
            return TeamMembership(
                team_name=team.name,
                role=role,
                size=capacity.size,
                is_complete=capacity.is_complete,
                problem_statement_id=resolved.id,
                problem_statement_title=resolved.title,
            )

        if team.leader_user_id:
            lookup[team.leader_user_id] = membership("Leader")

        for user_id in capacity.effective_member_ids:
            existing = lookup.get(user_id)
            if existing is None or existing.role != "Leader":
                lookup[user_id] = membership("Member")

    return lookup


def dynamic_field_keys(participants: Sequence[Participant]) -> list[str]:
    keys: set[str] = set()
    for participant in participants:
        keys.update(participant.fields.keys())
    return sorted(keys)


# =======================================================================
# Views
# =======================================================================


def build_participant_rows(
    participants: Sequence[Participant],
    lookup: dict[str, TeamMembership],
    field_keys: list[str],
) -> list[dict]:
    rows = []
    for participant in participants:
        team = lookup.get(participant.user_id) or lookup.get(participant.email)
        row = {
            "name": participant.name,
            "email": participant.email,
            "gender": participant.gender,
            "userId": participant.user_id,
            "registrationDate": _iso(participant.created_at),
            "lastUpdated": _iso(participant.updated_at),
            "teamName": team.team_name if team else NO_TEAM,
            "teamRole": team.role if team else NO_ROLE,
            "hasTeam": _yes_no(team is not None),
            "teamSize": team.size if team else 0,
            "teamComplete": _yes_no(bool(team and team.is_complete)),
            "problemStatement": team.problem_statement_id if team else NOT_SELECTED,
            "problemStatementTitle": team.problem_statement_title if team else NOT_SELECTED,
        }
        for key in field_keys:
            # Fixed columns keep precedence over a same-named registration question
            row.setdefault(key, participant.fields.get(key) or "")
        rows.append(row)
    return rows


def build_team_rows(
    teams: Sequence[Team],
    participants: Sequence[Participant],
    catalog: ProblemStatementCatalog,
) -> list[dict]:
    by_identity: dict[str, Participant] = {}
    for participant in participants:
        by_identity.setdefault(participant.user_id, participant)
        if participant.email:
            by_identity.setdefault(participant.email, participant)

    rows = []
    for team in teams:
        capacity = compute_team_capacity(team)
        resolved = catalog.resolve(team.problem_statement)
        leader = by_identity.get(team.leader_user_id) if team.leader_user_id else None

        member_emails: list[str] = []
        member_names: list[str] = []
        if team.leader_user_id:
            member_emails.append(f"{leader.email if leader else team.leader_user_id} (Leader)")
            member_names.append(f"{leader.name if leader else 'Unknown'} (Leader)")
        for user_id in capacity.effective_member_ids:
            member = by_identity.get(user_id)
            member_emails.append(member.email if member else user_id)
            member_names.append(member.name if member else "Unknown")

        rows.append(
            {
                "teamName": team.name,
                "inviteCode": team.invite_code,
                "leaderEmail": team.leader_user_id or "",
                "leaderName": leader.name if leader else "Unknown",
                "memberCount": capacity.size,
                "isComplete": _yes_no(capacity.is_complete),
                "completionStatus": f"{capacity.size}/{MAX_TEAM_SIZE}",
                "spotsAvailable": capacity.spots_available,
                "problemStatementId": resolved.id,
                "problemStatementTitle": resolved.title,
                "problemStatementCategory": resolved.category,
                "problemStatementComplexity": resolved.complexity,
                "createdDate": _iso(team.created_at),
                "description": team.description,
                "skillsNeeded": ", ".join(team.skills_needed),
                "memberEmails": ", ".join(member_emails),
                "memberNames": ", ".join(member_names),
            }
        )
    return rows


def _metric_label(key: str, value: str) -> str:
    if key == "year" and value != NOT_SPECIFIED:
        return f"Year {value}"
    return value


def _distribution_rows(category: str, key: str, counts: Counter, total: int) -> list[dict]:
    return [
        {
            "category": category,
            "metric": _metric_label(key, metric),
            "value": value,
            "percentage": percentage(value, total),
        }
        for metric, value in counts.items()
    ]


def build_analytics_rows(
    participants: Sequence[Participant],
    teams: Sequence[Team],
    now: datetime,
    demographic_fields: Sequence[tuple[str, str]] = DEFAULT_DEMOGRAPHIC_FIELDS,
) -> list[dict]:
    """
    Distribution rows. Each category's percentages are relative to that
    category's own total, so they sum to ~100% within the category.
    """
    rows: list[dict] = []
    total_participants = len(participants)

    genders = Counter(p.gender.strip() or NOT_SPECIFIED for p in participants)
    rows += _distribution_rows("Gender Distribution", "gender", genders, total_participants)

    for key, label in demographic_fields:
        counts = Counter(field_value(p, key) or NOT_SPECIFIED for p in participants)
        rows += _distribution_rows(label, key, counts, total_participants)

    total_teams = len(teams)
    complete = sum(1 for t in teams if compute_team_capacity(t).is_complete)
    with_statement = sum(1 for t in teams if t.problem_statement is not None)
    team_counts = (
        ("Team Status", f"Complete Teams ({MAX_TEAM_SIZE} members)", complete),
        ("Team Status", "Incomplete Teams", total_teams - complete),
        ("Problem Statements", "Teams with Problem Statements", with_statement),
        ("Problem Statements", "Teams without Problem Statements", total_teams - with_statement),
    )
    for category, metric, value in team_counts:
        rows.append(
            {
                "category": category,
                "metric": metric,
                "value": value,
                "percentage": percentage(value, total_teams),
            }
        )

    boundary = _aware(now) - RECENT_WINDOW
    recent = sum(1 for p in participants if p.created_at and _aware(p.created_at) >= boundary)
    timeline = (
        ("Registrations (Last 7 days)", recent),
        ("Registrations (Earlier)", total_participants - recent),
    )
    for metric, value in timeline:
        rows.append(
            {
                "category": "Registration Timeline",
                "metric": metric,
                "value": value,
                "percentage": percentage(value, total_participants),
            }
        )

    return rows


def build_summary(
    participant_rows: list[dict],
    team_rows: list[dict],
    export_format: ExportFormat,
    now: datetime,
) -> dict:
    with_team = sum(1 for p in participant_rows if p["hasTeam"] == "Yes")
    complete = sum(1 for t in team_rows if t["isComplete"] == "Yes")
    with_statement = sum(1 for t in team_rows if t["problemStatementId"] != NOT_SELECTED)
    return {
        "totalParticipants": len(participant_rows),
        "totalTeams": len(team_rows),
        "participantsWithTeams": with_team,
        "participantsWithoutTeams": len(participant_rows) - with_team,
        "completeTeams": complete,
        "incompleteTeams": len(team_rows) - complete,
        "teamsWithProblemStatements": with_statement,
        "teamsWithoutProblemStatements": len(team_rows) - with_statement,
        "exportDate": now.isoformat(),
        "exportFormat": export_format.value,
    }


def build_views(
    participants: Sequence[Participant],
    teams: Sequence[Team],
    catalog: ProblemStatementCatalog,
    scope: ExportScope = ExportScope.ALL,
    export_format: ExportFormat = ExportFormat.EXCEL,
    now: datetime | None = None,
) -> ExportViews:
    now = now or datetime.now(UTC)

    lookup = build_membership_lookup(teams, catalog)
    participant_rows = build_participant_rows(participants, lookup, dynamic_field_keys(participants))
    team_rows = build_team_rows(teams, participants, catalog)

    return ExportViews(
        summary=build_summary(participant_rows, team_rows, export_format, now),
        participants=participant_rows if scope.includes("participants") else None,
        teams=team_rows if scope.includes("teams") else None,
        analytics=(
            build_analytics_rows(participants, teams, now) if scope.includes("analytics") else None
        ),
    )


def export_filename(export_format: ExportFormat, now: datetime) -> str:
    return f"sih-internals-export-{now.date().isoformat()}.{FILE_EXTENSIONS[export_format]}"


def build_export(
    participants: Sequence[Participant],
    teams: Sequence[Team],
    catalog: ProblemStatementCatalog,
    scope: ExportScope = ExportScope.ALL,
    export_format: ExportFormat = ExportFormat.EXCEL,
    now: datetime | None = None,
) -> ExportDocument:
    now = now or datetime.now(UTC)
    views = build_views(participants, teams, catalog, scope, export_format, now)

    match export_format:
        case ExportFormat.JSON:
            content = serializers.to_json(views)
        case ExportFormat.CSV:
            content = serializers.to_csv(views)
        case _:
            content = serializers.to_xlsx(views)

    return ExportDocument(
        content=content,
        media_type=MEDIA_TYPES[export_format],
        filename=export_filename(export_format, now),
    )


class ExportService:
    """Reads the registration documents and hands them to the pure transformer."""

    def __init__(
        self,
        participants: ParticipantRepository | None = None,
        teams: TeamRepository | None = None,
    ):
        self.participants = participants or ParticipantRepository()
        self.teams = teams or TeamRepository()

    async def _load(self) -> tuple[list[Participant], list[Team]]:
        participants = await self.participants.list_all()
        teams = await self.teams.list_all()
        return participants, teams

    async def export(self, scope: ExportScope, export_format: ExportFormat) -> ExportDocument:
        participants, teams = await self._load()

        logger.info(
            "Building export",
            scope=scope.value,
            format=export_format.value,
            participants=len(participants),
            teams=len(teams),
        )

        document = build_export(participants, teams, get_catalog(), scope, export_format)

        logger.info("Export built", filename=document.filename, size_bytes=len(document.content))
        return document

    async def summary(self) -> dict:
        participants, teams = await self._load()
        views = build_views(participants, teams, get_catalog(), ExportScope.ALL, ExportFormat.JSON)
        return views.summary


# Global instance
export_service = ExportService()
