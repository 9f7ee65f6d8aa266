"""
FastAPI application entrypoint for the Spotify authorization flow.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spotify_mcp.api.routes import router as api_router
from spotify_mcp.api.routes import status_for_error
from spotify_mcp.core.config import get_settings
from spotify_mcp.core.errors import CredentialError
from spotify_mcp.core.logging import configure_logging


async def _credential_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = status_for_error(exc)  # type: ignore[arg-type]
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Spotify MCP authorization",
        version="0.1.0",
        description="Authorization code flow that seeds the Spotify credential store.",
    )
    app.include_router(api_router, prefix="/api")
    app.add_exception_handler(CredentialError, _credential_error_handler)
    return app


app = create_app()


def run() -> None:
    """Serve the authorization app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "spotify_mcp.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


__all__ = ["app", "create_app", "run"]
