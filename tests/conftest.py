from datetime import UTC, datetime, timedelta

import pytest

from app.auth.verify import admin_dependency, auth_dependency
from app.models.domain.broadcast_domain import SendReport
from app.models.domain.registration_domain import Participant, Team
from app.services.problem_statement_catalog import ProblemStatementCatalog

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class FakeTransport:
    """Records every send; fails on chosen batch indexes and refuses chosen addresses."""

    def __init__(
        self,
        fail_on: set[int] | None = None,
        refuse: set[str] | None = None,
        report: bool = True,
    ):
        self.sender = "SIH Organizers <no-reply@sih-internals.local>"
        self.sent: list[tuple] = []
        self.fail_on = fail_on or set()
        self.refuse = refuse or set()
        self.report = report

    async def send(self, message, recipients):
        index = len(self.sent)
        self.sent.append((message, list(recipients)))
        if index in self.fail_on:
            raise ConnectionError(f"batch {index} rejected by relay")
        if not self.report:
            return None
        return SendReport(
            accepted=[r for r in recipients if r not in self.refuse],
            rejected=[r for r in recipients if r in self.refuse],
        )

    @property
    def batches(self) -> list[list[str]]:
        return [recipients for _message, recipients in self.sent]


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def catalog():
    return ProblemStatementCatalog.from_dict(
        {
            "categories": [{"id": "software", "name": "Software"}],
            "problemStatements": [
                {
                    "id": "SIH1501",
                    "title": "Crop disease detection",
                    "category": "Software",
                    "theme": "Agriculture",
                    "description": "Detect crop disease from leaf photos",
                    "complexity": "Medium",
                    "domain": "Agriculture",
                    "techStack": ["Python", "TensorFlow"],
                },
                {
                    "id": "SIH1505",
                    "title": "Water quality buoy",
                    "category": "Hardware",
                    "theme": "Clean & Green Technology",
                    "description": "Solar-powered monitoring buoy",
                    "complexity": "High",
                    "domain": "Environment",
                    "techStack": ["ESP32", "LoRa"],
                },
            ],
        }
    )


@pytest.fixture
def participants():
    return [
        Participant(
            user_id="a@x.com",
            email="a@x.com",
            name="Asha",
            gender="Female",
            fields={"department": "CSE", "year": "3"},
            created_at=NOW - timedelta(days=2),
        ),
        Participant(
            user_id="b@x.com",
            email="b@x.com",
            name="Bilal",
            gender="Male",
            fields={"department": "ECE", "phone": "98450 12345"},
            created_at=NOW - timedelta(days=10),
        ),
        Participant(
            user_id="c@x.com",
            email="c@x.com",
            name="Chitra",
            gender="Female",
            fields={},
            created_at=NOW - timedelta(days=1),
        ),
    ]


@pytest.fixture
def alpha_team():
    return Team(name="Alpha", invite_code="ALPHA1", leader_user_id="a@x.com", member_user_ids=["b@x.com"])


@pytest.fixture
def admin_claims():
    return {"sub": "admin-1", "email": "organizer@ucek.ac.in", "app_metadata": {"role": "admin"}}


@pytest.fixture
def apply_admin_override(admin_claims):
    applied = []

    def _apply(app):
        app.dependency_overrides[admin_dependency] = lambda: admin_claims
        applied.append(app)

    yield _apply

    for app in applied:
        app.dependency_overrides.clear()


@pytest.fixture
def apply_auth_override():
    applied = []

    def _apply(app, claims: dict):
        app.dependency_overrides[auth_dependency] = lambda: claims
        applied.append(app)

    yield _apply

    for app in applied:
        app.dependency_overrides.clear()


@pytest.fixture
def make_transport():
    return FakeTransport
