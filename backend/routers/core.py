# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Core-API Endpunkte (Health).
"""

from fastapi import APIRouter

from ..app_state import studio

router = APIRouter()


@router.get("/health")
def health():
    """Verfuegbarkeit der konfigurierten Provider; fehlende Credentials sind kein Fehler."""
    return {"ok": True, "status": "ok", "providers": studio.availability()}
