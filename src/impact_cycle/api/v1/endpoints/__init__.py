# src/impact_cycle/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .cron import router as cron_router
from .game import router as game_router

__all__ = [
    "auth_router",
    "cron_router",
    "game_router",
]
