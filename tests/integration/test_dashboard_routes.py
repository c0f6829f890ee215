import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.models.domain.broadcast_domain import BroadcastResult
from app.models.domain.export_domain import ExportDocument
from app.services.email.transport import MailTransportConfigurationError
from app.services.export.export_service import ExportService

client = TestClient(app)

RECIPIENTS = ["a@x.com", "b@x.com", "c@x.com"]


@pytest.fixture
def admin(apply_admin_override):
    apply_admin_override(app)


@pytest.fixture
def audit():
    with patch("app.routes.dashboard.audit_pii_access", new_callable=AsyncMock) as mock_audit:
        yield mock_audit


@pytest.fixture
def mail_ready():
    with patch("app.routes.dashboard.get_or_create_transport", return_value=MagicMock()) as factory:
        yield factory


def _repo_with(emails):
    repo = MagicMock()
    repo.list_emails = AsyncMock(return_value=emails)
    return repo


class TestBroadcast:
    def test_broadcast_sends_to_all_participants(self, admin, audit, mail_ready):
        result = BroadcastResult(total_recipients=3, batches=1, accepted=3)
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(return_value=result)

        with (
            patch("app.routes.dashboard.ParticipantRepository", _repo_with(RECIPIENTS)),
            patch("app.routes.dashboard.broadcast_dispatcher", dispatcher),
        ):
            response = client.post(
                "/dashboard/broadcast",
                json={"subject": "Round 2", "message": "Shortlist is out", "chunkSize": 2},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["count"] == 3
        assert data["message"] == "Broadcast sent successfully to 3 participants"
        assert data["result"]["failedBatches"] == 0

        recipients, subject, text, options = dispatcher.dispatch.await_args.args
        assert recipients == RECIPIENTS
        assert subject == "Round 2"
        assert text == "Shortlist is out"
        assert options.chunk_size == 2
        audit.assert_awaited_once()
        assert audit.await_args.kwargs["action"] == "broadcast_sent"

    def test_broadcast_reports_failed_batches(self, admin, audit, mail_ready):
        result = BroadcastResult(
            total_recipients=3, batches=2, accepted=1, failed_batches=1, errors=["relay down"]
        )
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock(return_value=result)

        with (
            patch("app.routes.dashboard.ParticipantRepository", _repo_with(RECIPIENTS)),
            patch("app.routes.dashboard.broadcast_dispatcher", dispatcher),
        ):
            response = client.post("/dashboard/broadcast", json={"subject": "S", "message": "M"})

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["result"]["failedBatches"] == 1
        assert data["result"]["errors"] == ["relay down"]
        assert "1 of 2 batches failing" in data["message"]

    def test_broadcast_without_recipients(self, admin, audit, mail_ready):
        dispatcher = MagicMock()
        dispatcher.dispatch = AsyncMock()

        with (
            patch("app.routes.dashboard.ParticipantRepository", _repo_with([])),
            patch("app.routes.dashboard.broadcast_dispatcher", dispatcher),
        ):
            response = client.post("/dashboard/broadcast", json={"subject": "S", "message": "M"})

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["count"] == 0
        assert "No recipients found" in data["info"]
        dispatcher.dispatch.assert_not_awaited()

    def test_broadcast_without_mail_configuration(self, admin, audit):
        repo = _repo_with(RECIPIENTS)

        with (
            patch(
                "app.routes.dashboard.get_or_create_transport",
                side_effect=MailTransportConfigurationError(["SMTP_HOST", "SMTP_PASS"]),
            ),
            patch("app.routes.dashboard.ParticipantRepository", repo),
        ):
            response = client.post("/dashboard/broadcast", json={"subject": "S", "message": "M"})

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "Email service not configured"
        assert "SMTP_HOST" in data["detail"]
        assert data["suggestion"]
        repo.list_emails.assert_not_awaited()

    @pytest.mark.parametrize(
        "body",
        [
            {"message": "M"},
            {"subject": "S"},
            {"subject": "   ", "message": "M"},
            {"subject": "S", "message": ""},
            {"subject": "S", "message": "M", "delayMs": -1},
        ],
    )
    def test_broadcast_rejects_invalid_body(self, admin, body):
        response = client.post("/dashboard/broadcast", json=body)

        assert response.status_code == 422

    def test_broadcast_requires_admin(self, apply_auth_override):
        apply_auth_override(app, {"sub": "u1", "email": "student@x.com"})

        response = client.post("/dashboard/broadcast", json={"subject": "S", "message": "M"})

        assert response.status_code == 401

    def test_broadcast_requires_token(self):
        response = client.post("/dashboard/broadcast", json={"subject": "S", "message": "M"})

        assert response.status_code in (401, 403)


class TestExport:
    @pytest.mark.parametrize(
        "fmt, media_type, extension",
        [
            ("json", "application/json", "json"),
            ("csv", "text/csv", "csv"),
            (
                "excel",
                "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                "xlsx",
            ),
        ],
    )
    def test_export_formats(
        self, admin, audit, participants, alpha_team, catalog, fmt, media_type, extension
    ):
        participant_repo = MagicMock()
        participant_repo.list_all = AsyncMock(return_value=participants)
        team_repo = MagicMock()
        team_repo.list_all = AsyncMock(return_value=[alpha_team])

        service = ExportService(participants=participant_repo, teams=team_repo)

        with (
            patch("app.routes.dashboard.export_service", service),
            patch("app.services.export.export_service.get_catalog", return_value=catalog),
        ):
            response = client.get(f"/dashboard/export?format={fmt}&sheets=all")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(media_type)
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="sih-internals-export-')
        assert disposition.endswith(f'.{extension}"')
        if fmt == "json":
            assert json.loads(response.content)["summary"]["totalParticipants"] == 3
        audit.assert_awaited_once()

    def test_export_defaults_to_excel(self, admin, audit):
        service = MagicMock()
        service.export = AsyncMock(
            return_value=ExportDocument(content=b"xlsx", media_type="application/octet-stream", filename="x.xlsx")
        )

        with patch("app.routes.dashboard.export_service", service):
            response = client.get("/dashboard/export")

        assert response.status_code == 200
        scope, export_format = service.export.await_args.args
        assert scope.value == "all"
        assert export_format.value == "excel"

    @pytest.mark.parametrize("query", ["format=pdf", "sheets=everything"])
    def test_export_rejects_unknown_selectors(self, admin, query):
        response = client.get(f"/dashboard/export?{query}")

        assert response.status_code == 422

    def test_export_failure_returns_retry_message(self, admin, audit):
        service = MagicMock()
        service.export = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with patch("app.routes.dashboard.export_service", service):
            response = client.get("/dashboard/export?format=csv")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to generate export, please retry"
        audit.assert_not_awaited()

    def test_export_requires_admin(self, apply_auth_override):
        apply_auth_override(app, {"sub": "u1", "email": "student@x.com"})

        response = client.get("/dashboard/export?format=json")

        assert response.status_code == 401


class TestStats:
    def test_stats_returns_summary(self, admin):
        service = MagicMock()
        service.summary = AsyncMock(return_value={"totalParticipants": 3, "totalTeams": 1})

        with patch("app.routes.dashboard.export_service", service):
            response = client.get("/dashboard/stats")

        assert response.status_code == 200
        assert response.json()["summary"]["totalTeams"] == 1

    def test_stats_failure_returns_retry_message(self, admin):
        service = MagicMock()
        service.summary = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with patch("app.routes.dashboard.export_service", service):
            response = client.get("/dashboard/stats")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to compute stats, please retry"


class TestDebugEmail:
    def test_send_test_email(self, admin, fake_transport):
        with patch(
            "app.services.email.notification_service.get_or_create_transport", return_value=fake_transport
        ):
            response = client.post("/debug/test-email", json={"testEmail": "me@x.com"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        message, recipients = fake_transport.sent[0]
        assert recipients == ["me@x.com"]
        assert message["To"] == "me@x.com"
        assert "Test User" in message.get_content()

    def test_send_test_email_without_configuration(self, admin):
        with patch(
            "app.routes.debug.email_check.send_registration_email",
            AsyncMock(side_effect=MailTransportConfigurationError(["SMTP_HOST"])),
        ):
            response = client.post("/debug/test-email", json={"testEmail": "me@x.com"})

        assert response.status_code == 503
        assert response.json()["error"] == "Email service not configured"
