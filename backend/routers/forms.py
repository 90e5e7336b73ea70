# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Fragebogen-Endpunkte (Spezifikations-/3D-Fragebogen und 2D-Edit-Formular).
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from exceptions import StudioError
from ..api_logging import log_event, server_error_response
from ..app_state import studio

router = APIRouter()


class GenerateFormRequest(BaseModel):
    mode: Optional[str] = None
    source: Optional[str] = "idea"
    idea: Optional[str] = ""
    prototypePrompt: Optional[str] = ""
    extraContext: Optional[str] = ""


class EditFormRequest(BaseModel):
    prototypePrompt: Optional[str] = ""
    userPrompt: Optional[str] = ""


@router.post("/forms/generate")
async def generate_form(body: GenerateFormRequest):
    """Dynamischer Fragebogen; ohne Text-Provider kommt der Standard-Fragebogen."""
    try:
        result = await studio.form_service.synthesize(body.mode, {
            "source": body.source,
            "idea": body.idea,
            "prototype_prompt": body.prototypePrompt,
            "extra_context": body.extraContext,
        })
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("generate-form", e)

    log_event("Forms", "Generated", f"mode={result.questionnaire.mode.value} fallback={result.used_fallback}")
    return {"ok": True, "form": result.questionnaire.to_dict(), "usedFallback": result.used_fallback}


@router.post("/forms/edit")
async def generate_edit_form(body: EditFormRequest):
    """Edit-Formular fuer einen einzelnen 2D-Prototyp."""
    try:
        result = await studio.form_service.synthesize_edit_form(body.prototypePrompt, body.userPrompt)
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("generate-2d-questions", e)

    return {"ok": True, "form": result.form.to_dict(), "usedFallback": result.used_fallback}
