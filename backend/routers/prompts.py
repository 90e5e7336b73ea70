# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Prompt-Endpunkte - 2D->3D-Adaption und CAD-Skript-Entwurf.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from exceptions import StudioError
from ..api_logging import server_error_response
from ..app_state import studio

router = APIRouter()


class Adapt3DRequest(BaseModel):
    userPrompt: Optional[str] = ""
    prototypePrompt: Optional[str] = ""


class CadScriptRequest(BaseModel):
    fsdText: Optional[str] = ""
    concept3DPrompt: Optional[str] = ""
    targetLibrary: Optional[str] = None


@router.post("/prompts/adapt-3d")
async def adapt_prompt_to_3d(body: Adapt3DRequest):
    try:
        result = await studio.prompt_service.adapt_prompt_to_3d(body.userPrompt, body.prototypePrompt)
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("adapt-2d-to-3d", e)
    return {"ok": True, "prompt3D": result.text, "usedFallback": result.used_fallback}


@router.post("/cad/script")
async def generate_cad_script(body: CadScriptRequest):
    """Skript-Skelett fuer cadquery, freecad oder generischen Pseudo-Code."""
    try:
        draft = await studio.prompt_service.draft_cad_script(body.fsdText, body.concept3DPrompt, body.targetLibrary)
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("cad-script", e)
    return {
        "ok": True,
        "pythonScript": draft.python_script,
        "notes": draft.notes,
        "usedFallback": draft.used_fallback,
    }
