# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: FastAPI Backend - REST- und WebSocket-Endpunkte der Prototype Studio Pipeline.
              Bindet die Router ein und uebersetzt StudioError-Subklassen in HTTP-Status.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from exceptions import (
    ConfigurationError,
    InputValidationError,
    InvariantViolationError,
    ProviderError,
    ProviderTimeoutError,
    StudioError,
)
from .api_logging import log_event
from .app_state import studio
from .routers import core, forms, images, mesh, pipeline, prompts, specification


def status_code_for(error: StudioError) -> int:
    """HTTP-Status fuer einen Fehler der Studio-Hierarchie."""
    if isinstance(error, InputValidationError):
        return 400
    if isinstance(error, ConfigurationError):
        return 503
    if isinstance(error, ProviderTimeoutError):
        return 504
    if isinstance(error, ProviderError):
        return 502
    if isinstance(error, InvariantViolationError):
        return 500
    return 500


def error_body(error: StudioError) -> dict:
    return {"ok": False, "error": str(error), "errorType": type(error).__name__}


def register_exception_handlers(app: FastAPI) -> None:
    """Registriert die Abbildung StudioError -> {ok: false, error, errorType}."""

    @app.exception_handler(StudioError)
    async def studio_error_handler(request: Request, exc: StudioError):
        status = status_code_for(exc)
        log_event("API", type(exc).__name__, f"{request.method} {request.url.path} -> {status}: {exc}")
        return JSONResponse(status_code=status, content=error_body(exc))


app = FastAPI(
    title="Prototype Studio API",
    description="Backend API fuer die Generierungs-Pipeline Idee -> Fragebogen -> Spezifikation -> 2D -> 3D",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=studio.config.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(core.router)
app.include_router(forms.router, prefix="/genai")
app.include_router(specification.router, prefix="/genai")
app.include_router(pipeline.router, prefix="/genai")
app.include_router(images.router, prefix="/genai")
app.include_router(prompts.router, prefix="/genai")
app.include_router(mesh.router, prefix="/genai")
