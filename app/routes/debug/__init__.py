"""Debug route aggregation."""

from fastapi import APIRouter

from app.routes.debug import email_check

router = APIRouter()

router.include_router(email_check.router)
