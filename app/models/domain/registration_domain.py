"""
Domain models for registration documents.

Participants and teams are stored as camelCase JSON documents; the pydantic
models accept either the stored alias or the snake_case field name.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_TEAM_SIZE = 6
CUSTOM_PROBLEM_PREFIX = "CUSTOM_"


@dataclass(frozen=True, slots=True)
class CatalogRef:
    """Team picked a statement from the organizer catalog."""

    id: str

    @property
    def storage_id(self) -> str:
        return self.id


@dataclass(frozen=True, slots=True)
class CustomRef:
    """Team authored its own problem statement."""

    id: str
    title: str = "Custom Problem Statement"
    description: str = "Custom problem statement created by the team"
    category: str = "Custom"

    @property
    def storage_id(self) -> str:
        return self.id


ProblemStatementRef = CatalogRef | CustomRef


def parse_problem_statement_ref(value: Any) -> ProblemStatementRef | None:
    """Turn a stored problem statement id into its tagged reference."""
    if value is None or isinstance(value, CatalogRef | CustomRef):
        return value
    text = str(value).strip()
    if not text:
        return None
    if text.startswith(CUSTOM_PROBLEM_PREFIX):
        return CustomRef(id=text)
    return CatalogRef(id=text)


class ProblemStatement(BaseModel):
    """Catalog entry. Immutable once the catalog is loaded."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str
    title: str
    category: str
    theme: str = ""
    description: str = ""
    complexity: Literal["Low", "Medium", "High"] = "Medium"
    domain: str = ""
    organization: str = ""
    tech_stack: list[str] = Field(default_factory=list, alias="techStack")
    expected_outcome: str = Field(default="", alias="expectedOutcome")
    prizes: dict[str, Any] = Field(default_factory=dict)


class ProblemStatementCategory(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    description: str = ""


class Participant(BaseModel):
    """Registered participant keyed by email identity."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId")
    email: str = ""
    name: str = ""
    gender: str = ""
    # Admin-defined registration questions; absent keys export as ""
    fields: dict[str, str | None] = Field(default_factory=dict)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @model_validator(mode="before")
    @classmethod
    def _email_as_identity(cls, data: Any) -> Any:
        # Participants are keyed by email; a record without userId uses it
        if isinstance(data, dict) and not (data.get("userId") or data.get("user_id")) and data.get("email"):
            data = {**data, "userId": data["email"]}
        return data

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_fields(cls, value: Any) -> dict[str, str | None]:
        if not isinstance(value, dict):
            return {}
        return {str(k): (None if v is None else str(v)) for k, v in value.items()}

    @field_validator("email", "name", "gender", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


class Team(BaseModel):
    """Team document. The leader is stored apart from the member list."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    invite_code: str = Field(default="", alias="inviteCode")
    leader_user_id: str | None = Field(default=None, alias="leaderUserId")
    member_user_ids: list[str] = Field(default_factory=list, alias="memberUserIds")
    problem_statement: ProblemStatementRef | None = Field(default=None, alias="problemStatement")
    description: str = ""
    skills_needed: list[str] = Field(default_factory=list, alias="skillsNeeded")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("problem_statement", mode="before")
    @classmethod
    def _parse_problem_statement(cls, value: Any) -> ProblemStatementRef | None:
        return parse_problem_statement_ref(value)

    @field_validator("member_user_ids", "skills_needed", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> list[str]:
        return [] if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else value


@dataclass(slots=True)
class TeamCapacity:
    """Effective team size with the leader counted exactly once."""

    effective_member_ids: list[str]
    size: int
    is_complete: bool
    is_empty: bool
    spots_available: int
