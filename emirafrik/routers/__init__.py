"""API routers for the Emirafrik payment backend."""
from fastapi import APIRouter

from . import health, mobile_money


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(mobile_money.router)
    return api_router
