# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Spezifikations-Endpunkt (Dokument + abgeleitete 2D/3D-Prompts).
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from ..specification_service import synthesize_specification

router = APIRouter()


class SpecificationRequest(BaseModel):
    source: Optional[str] = "fromIdea"
    idea: Optional[str] = ""
    prototypePrompt: Optional[str] = None
    answers: Optional[List[Dict[str, Any]]] = None


@router.post("/specification")
def generate_specification(body: SpecificationRequest):
    """Deterministisch, ohne Provider-Aufruf."""
    spec = synthesize_specification(body.source, body.idea, body.prototypePrompt, body.answers)
    response = {"ok": True}
    response.update(spec.to_dict())
    return response
