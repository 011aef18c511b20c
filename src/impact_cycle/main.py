# src/impact_cycle/main.py
"""Main entry point for the Impact cycle application."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from impact_cycle.api.v1 import auth_router, cron_router, game_router
from impact_cycle.core.settings import settings

# Initialize FastAPI app
app = FastAPI(
    title="Impact Cycle API",
    description="Daily coordinate-strike cycle settled on-chain",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.middleware("http")
async def security_headers(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Attach framing and content-type hardening headers to every response."""
    response = await call_next(request)
    response.headers["Content-Security-Policy"] = (
        "frame-ancestors " + " ".join(settings.frame_ancestors)
    )
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
    response.headers["X-Robots-Tag"] = "noindex"
    return response


# Include API routers
app.include_router(cron_router, prefix="/api/v1")
app.include_router(auth_router, prefix="/api/v1")
app.include_router(game_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Daily coordinate-strike cycle settled on-chain",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("impact_cycle.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
