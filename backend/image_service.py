# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Image Generation Orchestrator - 2D-Prototypen als Batch und
              Einzel-Edit (Prototyp I -> I+1). Ein Bild-Aufruf pro Prompt;
              ein fehlgeschlagenes Bild bricht den Batch nie ab.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from exceptions import ConfigurationError, InputValidationError
from logger_utils import log_event
from studio_models import Prototype, Provenance
from .prompt_service import DesignPromptContext, PromptService

MAX_BATCH_SIZE = 6
IMAGE_MODES = ("sketch", "realistic")
VIEWS = ("front", "back", "left", "right", "top", "bottom")
DOWNLOAD_FORMATS = ("png", "jpg", "webp")


@dataclass
class ImageBatchRequest:
    idea: str
    mode: str = "sketch"
    views: List[str] = field(default_factory=lambda: ["front"])
    count: int = 1
    reference_image: Optional[str] = None
    download_format: str = "png"


@dataclass
class ImageBatch:
    prompts: List[str]
    prototypes: List[Prototype]
    used_fallback_prompts: bool


def validate_batch_request(request: ImageBatchRequest) -> ImageBatchRequest:
    """
    Prueft die Eingaben vor jedem Provider-Aufruf.

    Raises:
        InputValidationError: Mit Beschreibung der verletzten Bedingung
    """
    idea = (request.idea or "").strip()
    if not idea:
        raise InputValidationError("Missing idea", field="idea")
    if not request.views:
        raise InputValidationError("At least one view must be selected", field="views")
    if not isinstance(request.count, int) or request.count <= 0:
        raise InputValidationError("numImages must be a positive number", field="numImages")
    if request.mode not in IMAGE_MODES:
        raise InputValidationError(f"Unknown mode '{request.mode}' (sketch | realistic)", field="mode")
    unknown_views = [v for v in request.views if v not in VIEWS]
    if unknown_views:
        raise InputValidationError(f"Unknown views: {', '.join(map(str, unknown_views))}", field="views")
    if request.download_format not in DOWNLOAD_FORMATS:
        raise InputValidationError(
            f"Unknown downloadFormat '{request.download_format}' (png | jpg | webp)", field="downloadFormat"
        )
    return ImageBatchRequest(
        idea=idea,
        mode=request.mode,
        views=list(request.views),
        count=min(request.count, MAX_BATCH_SIZE),
        reference_image=request.reference_image or None,
        download_format=request.download_format,
    )


class ImageGenerationService:
    """
    Orchestriert Prompt-Batch und Bild-Aufrufe.
    max_concurrency=1 arbeitet streng sequentiell; hoehere Werte begrenzen
    parallele Aufrufe, die Ordinalzahlen bleiben in Prompt-Reihenfolge.
    """

    def __init__(self, prompt_service: PromptService, image_provider, max_concurrency: int = 1):
        self.prompt_service = prompt_service
        self.image_provider = image_provider
        self.max_concurrency = max(1, max_concurrency)

    def _require_configured(self) -> None:
        if not self.image_provider.check_available():
            raise ConfigurationError("Missing REPLICATE_API_TOKEN in env", config_key="image_provider.api_token")

    async def _render(self, prompt: str, mode: str, reference_image: Optional[str], ordinal: int) -> str:
        result = await self.image_provider.generate(prompt, mode, reference_image)
        if not result.ok:
            log_event("ImageService", "ImageFailed", {"ordinal": ordinal, "error": str(result.error)})
            return ""
        if not result.value:
            log_event("ImageService", "NoImageUrl", {"ordinal": ordinal})
        return result.value

    async def generate_batch(self, request: ImageBatchRequest) -> ImageBatch:
        """
        Erzeugt count (max. 6) Prototypen mit Ordinalzahlen 1..count.

        Raises:
            InputValidationError: Bei ungueltiger Anfrage
            ConfigurationError: Wenn der Bild-Provider nicht konfiguriert ist
        """
        request = validate_batch_request(request)
        self._require_configured()

        context = DesignPromptContext(
            mode=request.mode,
            views=request.views,
            has_image=bool(request.reference_image),
            num_images=request.count,
        )
        batch = await self.prompt_service.build_design_prompts(request.idea, context)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def render_one(index: int, prompt: str) -> Prototype:
            async with semaphore:
                image_url = await self._render(prompt, request.mode, request.reference_image, index + 1)
            return Prototype(ordinal=index + 1, image_url=image_url, prompt=prompt,
                             provenance=Provenance.INITIAL)

        if self.max_concurrency == 1:
            prototypes = [await render_one(i, p) for i, p in enumerate(batch.prompts)]
        else:
            prototypes = list(await asyncio.gather(*(render_one(i, p) for i, p in enumerate(batch.prompts))))
            prototypes.sort(key=lambda proto: proto.ordinal)

        log_event("ImageService", "BatchGenerated", {
            "count": len(prototypes),
            "failed": sum(1 for p in prototypes if not p.image_url),
            "used_fallback_prompts": batch.used_fallback,
        })
        return ImageBatch(prompts=batch.prompts, prototypes=prototypes,
                          used_fallback_prompts=batch.used_fallback)

    async def edit_prototype(self, user_prompt: str, mode: Optional[str], base_prototype: Prototype,
                             edit_values: Optional[Dict[str, Any]] = None,
                             reference_image: Optional[str] = None) -> Prototype:
        """
        Erzeugt Prototyp I+1 aus Prototyp I und den Werten des Edit-Formulars.

        Raises:
            InputValidationError: Bei fehlendem userPrompt oder Basis-Prompt
            ConfigurationError: Wenn der Bild-Provider nicht konfiguriert ist
        """
        user_prompt = (user_prompt or "").strip()
        mode = mode or "realistic"
        if not user_prompt:
            raise InputValidationError("Missing userPrompt", field="userPrompt")
        if base_prototype is None or not (base_prototype.prompt or "").strip():
            raise InputValidationError("Missing basePrototype.finalPrompt", field="basePrototype")
        if mode not in IMAGE_MODES:
            raise InputValidationError(f"Unknown mode '{mode}' (sketch | realistic)", field="mode")
        self._require_configured()

        # Leere Felder bedeuten "keine Aenderung"
        edits = {k: v for k, v in (edit_values or {}).items() if str(v or "").strip()}
        prompt = await self.prompt_service.build_edit_prompt(user_prompt, base_prototype.prompt, edits)

        ordinal = base_prototype.ordinal + 1
        image_url = await self._render(prompt.text, mode, reference_image, ordinal)
        log_event("ImageService", "PrototypeEdited", {"base": base_prototype.ordinal, "new": ordinal})
        return Prototype(ordinal=ordinal, image_url=image_url, prompt=prompt.text, provenance=Provenance.EDIT)
