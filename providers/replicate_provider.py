# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Replicate-Adapter fuer 2D-Bilder (ID-Sketch / SD 3.5) und
              Image-to-3D (Trellis). Nutzt die Predictions-API direkt ueber aiohttp.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from exceptions import ProviderMalformedResponseError, ProviderTimeoutError, ProviderUnavailableError
from logger_utils import log_event
from .base_provider import BaseProvider, Err, Ok, ProviderResult
from .locator_extraction import first_locator

logger = logging.getLogger(__name__)

# Replicate-Status, nach denen sich eine Prediction nicht mehr aendert
TERMINAL_PREDICTION_STATUSES = ("succeeded", "failed", "canceled")

IMAGE_MODES = ("sketch", "realistic")


class ReplicateClient(BaseProvider):
    """Duenne Huelle um POST /predictions und GET /predictions/{id}."""

    name = "replicate"
    credential_key = "image_provider.api_token"

    def __init__(self, api_token: str, base_url: str = "https://api.replicate.com/v1",
                 timeout_seconds: float = 120, poll_interval: float = 1.0):
        super().__init__(base_url, timeout_seconds)
        self.api_token = api_token or ""
        self.poll_interval = poll_interval

    def check_available(self) -> bool:
        return bool(self.api_token) and super().check_available()

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_token}"}

    async def create_prediction(self, model_ref: str, model_input: Dict[str, Any], wait: bool = True) -> ProviderResult:
        """
        Startet eine Prediction.

        model_ref "owner/name" nutzt den Modell-Endpunkt, "owner/name:version"
        den versionierten /predictions-Endpunkt. Mit wait=True haelt Replicate
        die Verbindung offen, bis das Ergebnis vorliegt (Sync-Fenster).
        """
        if not self.api_token:
            return self._missing_credential(self.credential_key)

        if ":" in model_ref:
            version = model_ref.split(":", 1)[1]
            url = f"{self.base_url}/predictions"
            payload: Dict[str, Any] = {"version": version, "input": model_input}
        else:
            url = f"{self.base_url}/models/{model_ref}/predictions"
            payload = {"input": model_input}

        headers = {"Prefer": "wait"} if wait else None
        result = await self._request_json("POST", url, payload, headers=headers)
        if result.ok and not isinstance(result.value, dict):
            return Err(ProviderMalformedResponseError(self.name, "Prediction ist kein Objekt"))
        return result

    async def get_prediction(self, prediction_id: str) -> ProviderResult:
        """Liest den aktuellen Stand einer Prediction (ohne Seiteneffekte)."""
        if not self.api_token:
            return self._missing_credential(self.credential_key)
        result = await self._request_json("GET", f"{self.base_url}/predictions/{prediction_id}")
        if result.ok and not isinstance(result.value, dict):
            return Err(ProviderMalformedResponseError(self.name, "Prediction ist kein Objekt"))
        return result

    async def run(self, model_ref: str, model_input: Dict[str, Any]) -> ProviderResult:
        """
        Startet eine Prediction und wartet bis zum Endzustand, hoechstens
        timeout_seconds lang.

        Returns:
            Ok(prediction dict) mit status "succeeded", sonst Err
        """
        started = time.monotonic()
        result = await self.create_prediction(model_ref, model_input, wait=True)
        if not result.ok:
            return result
        prediction = result.value

        while prediction.get("status") not in TERMINAL_PREDICTION_STATUSES:
            if time.monotonic() - started > self.timeout_seconds:
                return Err(ProviderTimeoutError(self.name, self.timeout_seconds))
            prediction_id = prediction.get("id")
            if not prediction_id:
                return Err(ProviderMalformedResponseError(self.name, "Prediction ohne ID"))
            await asyncio.sleep(self.poll_interval)
            result = await self.get_prediction(prediction_id)
            if not result.ok:
                return result
            prediction = result.value

        if prediction.get("status") != "succeeded":
            logger.warning("Replicate-Prediction %s endete mit %s", prediction.get("id"), prediction.get("status"))
            return Err(ProviderUnavailableError(
                self.name, f"Prediction {prediction.get('status')}: {prediction.get('error') or 'ohne Fehlermeldung'}"
            ))
        return Ok(prediction)


class ReplicateImageProvider(ReplicateClient):
    """2D-Bildgenerierung: ein Prompt ergibt hoechstens einen Bild-Locator."""

    def __init__(self, api_token: str, base_url: str = "https://api.replicate.com/v1",
                 sketch_model: str = "orbifolia-coder/id-sketch",
                 realistic_model: str = "stability-ai/stable-diffusion-3.5-large",
                 timeout_seconds: float = 120, poll_interval: float = 1.0):
        super().__init__(api_token, base_url, timeout_seconds, poll_interval)
        self.models = {"sketch": sketch_model, "realistic": realistic_model}

    async def generate(self, prompt: str, mode: str = "sketch", reference_image: Optional[str] = None) -> ProviderResult:
        """
        Erzeugt ein Bild fuer einen Prompt.

        Returns:
            Ok(url) oder Ok("") wenn die Ausgabe keinen Locator enthaelt; Err bei Provider-Fehlern
        """
        model_ref = self.models.get(mode, self.models["sketch"])
        model_input: Dict[str, Any] = {"prompt": prompt}
        if reference_image:
            model_input["image"] = reference_image

        result = await self.run(model_ref, model_input)
        if not result.ok:
            return result

        image_url = first_locator(result.value.get("output"))
        if not image_url:
            log_event("Replicate", "NoLocator", {"model": model_ref, "output": result.value.get("output")})
        return Ok(image_url)


class ReplicateMeshProvider(ReplicateClient):
    """Image-to-3D ueber Trellis; Ergebnis synchron oder als pollbare Prediction."""

    name = "trellis"
    credential_key = "image_to_mesh.api_token"

    def __init__(self, api_token: str, base_url: str = "https://api.replicate.com/v1",
                 model: str = "firtoz/trellis", timeout_seconds: float = 120):
        super().__init__(api_token, base_url, timeout_seconds)
        self.model = model

    async def run_image(self, image_url: str, options: Dict[str, Any]) -> ProviderResult:
        """
        Startet Trellis und wartet nur das Sync-Fenster des Providers ab.

        Returns:
            Ok(prediction dict): status "succeeded" mit output oder noch laufend
        """
        model_input = {"images": [image_url]}
        model_input.update(options)
        result = await self.create_prediction(self.model, model_input, wait=True)
        if result.ok and result.value.get("status") in ("failed", "canceled"):
            return Err(ProviderUnavailableError(
                self.name, f"Prediction {result.value.get('status')}: {result.value.get('error') or 'ohne Fehlermeldung'}"
            ))
        return result

    async def poll(self, prediction_id: str) -> ProviderResult:
        return await self.get_prediction(prediction_id)
