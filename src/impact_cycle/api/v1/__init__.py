# src/impact_cycle/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import auth_router, cron_router, game_router

__all__ = [
    "auth_router",
    "cron_router",
    "game_router",
]
