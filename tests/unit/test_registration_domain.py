from datetime import datetime

import pytest
from pydantic import ValidationError

from app.models.domain.broadcast_domain import BroadcastOptions
from app.models.domain.export_domain import ExportScope
from app.models.domain.registration_domain import (
    CatalogRef,
    CustomRef,
    Participant,
    Team,
    parse_problem_statement_ref,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("SIH1501", CatalogRef("SIH1501")),
        ("CUSTOM_9", CustomRef("CUSTOM_9")),
        ("  SIH1502 ", CatalogRef("SIH1502")),
        ("", None),
        (None, None),
    ],
)
def test_parse_problem_statement_ref(value, expected):
    assert parse_problem_statement_ref(value) == expected


def test_team_reads_stored_document():
    team = Team.model_validate(
        {
            "name": "Alpha",
            "inviteCode": "ALPHA1",
            "leaderUserId": "a@x.com",
            "memberUserIds": None,
            "problemStatement": "CUSTOM_3",
            "skillsNeeded": ["ML"],
            "createdAt": "2026-10-01T09:00:00+00:00",
        }
    )

    assert team.member_user_ids == []
    assert team.problem_statement == CustomRef("CUSTOM_3")
    assert team.problem_statement.storage_id == "CUSTOM_3"
    assert isinstance(team.created_at, datetime)


def test_team_requires_name():
    with pytest.raises(ValidationError):
        Team.model_validate({"inviteCode": "X"})


def test_participant_coerces_fields_to_text():
    participant = Participant.model_validate(
        {"userId": "a@x.com", "email": "a@x.com", "name": None, "fields": {"year": 3, "notes": None}}
    )

    assert participant.name == ""
    assert participant.fields == {"year": "3", "notes": None}


def test_participant_with_non_dict_fields():
    participant = Participant.model_validate({"userId": "a@x.com", "fields": ["oops"]})

    assert participant.fields == {}


def test_broadcast_options_clamp():
    options = BroadcastOptions(chunk_size=-5, delay_ms=-1)

    assert options.chunk_size == 1
    assert options.delay_ms == 0


def test_export_scope_includes():
    assert ExportScope.ALL.includes("teams")
    assert ExportScope.TEAMS.includes("teams")
    assert not ExportScope.TEAMS.includes("participants")


def test_participant_without_user_id_is_keyed_by_email():
    participant = Participant.model_validate({"email": "a@x.com"})

    assert participant.user_id == "a@x.com"
    assert participant.email == "a@x.com"


def test_participant_keeps_explicit_user_id():
    participant = Participant.model_validate({"userId": "u-1", "email": "a@x.com"})

    assert participant.user_id == "u-1"


def test_participant_without_any_identity_is_rejected():
    with pytest.raises(ValidationError):
        Participant.model_validate({"name": "Nobody"})
