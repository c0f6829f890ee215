import pytest
from fastapi import HTTPException

from app.auth.verify import admin_dependency, caller_email, is_admin
from app.config import settings


def test_caller_email_is_normalized():
    assert caller_email({"email": "  Asha@X.com "}) == "asha@x.com"
    assert caller_email({"email": ""}) is None
    assert caller_email({}) is None


def test_admin_by_role(admin_claims):
    assert is_admin(admin_claims) is True


def test_admin_by_email_allowlist(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "lead@ucek.ac.in, Judge@ucek.ac.in")

    assert is_admin({"email": "judge@ucek.ac.in"}) is True
    assert is_admin({"email": "student@ucek.ac.in"}) is False


def test_admin_dependency_rejects_participants(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAILS", "")

    with pytest.raises(HTTPException) as exc_info:
        admin_dependency({"email": "student@ucek.ac.in", "app_metadata": {"role": "user"}})

    assert exc_info.value.status_code == 401
