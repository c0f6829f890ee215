"""
Health check endpoints: liveness plus readiness of the database and mail settings.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "sih-internals"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check.

    The database must answer. Missing SMTP settings do not make the service
    unready (export and catalog still work) but are reported as issues.
    """
    checks = {}
    overall_ok = True

    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if "pool_stats" in db_health:
            checks["database"]["pool_stats"] = db_health["pool_stats"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    missing_smtp = settings.missing_smtp_settings()
    checks["email"] = {
        "ok": not missing_smtp,
        "issues": [f"{name} not set" for name in missing_smtp] or None,
    }

    checks["configuration"] = {
        "ok": bool(settings.SUPABASE_DB_URL),
        "environment": settings.environment,
        "admins_configured": len(settings.admin_email_set()),
    }
    overall_ok = overall_ok and checks["configuration"]["ok"]

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
