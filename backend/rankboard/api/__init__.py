"""API routers for the backend service."""

from fastapi import APIRouter

from .routes import health_router
from .v1 import download, table, user_tables

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(table.router, prefix="", tags=["table"])
api_router.include_router(download.router, prefix="", tags=["download"])
api_router.include_router(user_tables.router, prefix="/user-tables", tags=["user-tables"])

__all__ = ["api_router"]
