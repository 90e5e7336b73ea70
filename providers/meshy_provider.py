# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Meshy Text-to-3D Adapter mit asynchronem start/poll Protokoll.
              start() liefert nur die Task-ID, poll() ist seiteneffektfrei
              und darf beliebig oft wiederholt werden.
"""

from typing import Any, Dict

from exceptions import InputValidationError, ProviderMalformedResponseError
from logger_utils import log_event
from .base_provider import BaseProvider, Err, Ok, ProviderResult


class MeshyMeshProvider(BaseProvider):
    """REST-Adapter fuer https://api.meshy.ai/openapi/v2/text-to-3d."""

    name = "meshy"

    def __init__(self, api_key: str, base_url: str = "https://api.meshy.ai/openapi/v2/text-to-3d",
                 timeout_seconds: float = 60):
        super().__init__(base_url, timeout_seconds)
        self.api_key = api_key or ""

    def check_available(self) -> bool:
        return bool(self.api_key) and super().check_available()

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

    async def start(self, payload: Dict[str, Any]) -> ProviderResult:
        """
        Startet einen Preview- oder Refine-Task.

        Args:
            payload: Meshy-Body (mode, prompt bzw. preview_task_id, Optionen)

        Returns:
            Ok(task_id) oder Err; Pflichtfelder werden vor jedem Netzwerkaufruf geprueft
        """
        mode = payload.get("mode", "preview")
        if mode == "refine" and not payload.get("preview_task_id"):
            return Err(InputValidationError(
                "previewTaskId is required when meshyMode = 'refine'", field="previewTaskId"
            ))
        if mode == "preview" and not str(payload.get("prompt") or "").strip():
            return Err(InputValidationError("Missing prompt3D", field="prompt3D"))
        if not self.api_key:
            return self._missing_credential("mesh_provider.api_key")

        result = await self._request_json("POST", self.base_url, payload)
        if not result.ok:
            return result

        data = result.value if isinstance(result.value, dict) else {}
        task_id = str(data.get("result") or "").strip()
        if not task_id:
            log_event("Meshy", "NoTaskId", data)
            return Err(ProviderMalformedResponseError(self.name, "Meshy did not return a task id"))
        return Ok(task_id)

    async def poll(self, task_id: str) -> ProviderResult:
        """Liest den Rohstatus eines Tasks (GET base_url/{id})."""
        if not self.api_key:
            return self._missing_credential("mesh_provider.api_key")
        result = await self._request_json("GET", f"{self.base_url}/{task_id}")
        if result.ok and not isinstance(result.value, dict):
            return Err(ProviderMalformedResponseError(self.name, "Task-Status ist kein Objekt"))
        return result
