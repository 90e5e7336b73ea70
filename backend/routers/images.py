# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: 2D-Bild-Endpunkte - Prototyp-Batch und Einzel-Edit.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from exceptions import StudioError
from studio_models import Prototype
from ..api_logging import log_event, server_error_response
from ..app_state import studio
from ..image_service import ImageBatchRequest

router = APIRouter()


class GenerateImagesRequest(BaseModel):
    idea: Optional[str] = ""
    mode: Optional[str] = "sketch"
    views: Optional[List[str]] = None
    numImages: Optional[int] = 1
    image: Optional[str] = None
    downloadFormat: Optional[str] = "png"


class EditImageRequest(BaseModel):
    userPrompt: Optional[str] = ""
    mode: Optional[str] = None
    basePrototype: Optional[Dict[str, Any]] = None
    editValues: Optional[Dict[str, Any]] = None
    image: Optional[str] = None


@router.post("/images/generate")
async def generate_images(body: GenerateImagesRequest):
    """
    Erzeugt bis zu 6 Prototypen. Einzelne fehlgeschlagene Bilder kommen mit
    leerer imageUrl zurueck, der Batch bleibt erfolgreich.
    """
    request = ImageBatchRequest(
        idea=body.idea or "",
        mode=body.mode or "sketch",
        views=["front"] if body.views is None else body.views,
        count=1 if body.numImages is None else body.numImages,
        reference_image=body.image,
        download_format=body.downloadFormat or "png",
    )
    try:
        batch = await studio.image_service.generate_batch(request)
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("generate-images", e)

    log_event("Images", "BatchDone", f"{len(batch.prototypes)} Prototypen")
    return {
        "ok": True,
        "userPrompt": request.idea.strip(),
        "mode": request.mode,
        "views": request.views,
        "downloadFormat": request.download_format,
        "prototypes": [p.to_dict() for p in batch.prototypes],
        "usedFallbackPrompts": batch.used_fallback_prompts,
    }


@router.post("/images/edit")
async def edit_image(body: EditImageRequest):
    """Prototyp I -> I+1 mit den Werten des Edit-Formulars."""
    base = Prototype.from_dict(body.basePrototype) if body.basePrototype is not None else None
    try:
        prototype = await studio.image_service.edit_prototype(
            body.userPrompt, body.mode, base, body.editValues, body.image
        )
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("edit-image", e)

    return {"ok": True, "newPrototype": prototype.to_dict()}
