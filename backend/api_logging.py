# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Einfaches API-Logging fuer Endpunkte (Konsole + JSONL-Eventlog).
"""

from fastapi.responses import JSONResponse

from logger_utils import log_event as _log_to_file


def log_event(component: str, event: str, message) -> None:
    """Logged ein Endpunkt-Event in die Konsole und in studio_log.jsonl."""
    print(f"[{component}] {event}: {message}")
    _log_to_file(component, event, message)


def server_error_response(route: str, error: Exception):
    """500-Antwort fuer unerwartete Fehler innerhalb eines Endpunkts."""
    log_event("API", "ServerError", f"{route}: {type(error).__name__}: {error}")
    return JSONResponse(status_code=500, content={"ok": False, "error": f"Server error in {route} route"})
