# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Mesh Generation Orchestrator.
              Text-to-3D (Meshy, Preview/Refine) als start/poll Task,
              Image-to-3D (Trellis) mit synchronem Ergebnis oder pollbarer Prediction.
              poll() bildet Provider-Status auf pending/running/completed/failed ab.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from exceptions import ConfigurationError, InputValidationError, ProviderMalformedResponseError
from logger_utils import log_event
from studio_models import (
    MeshArtifacts,
    MeshEngine,
    MeshMode,
    MeshStartResult,
    MeshState,
    MeshTask,
    MeshTaskHandle,
    MeshTaskStatus,
)
from .polling_loop import PollingLoop

MESHY_STATUS_MAP = {
    "PENDING": MeshState.PENDING,
    "IN_PROGRESS": MeshState.RUNNING,
    "SUCCEEDED": MeshState.COMPLETED,
    "FAILED": MeshState.FAILED,
    "CANCELED": MeshState.FAILED,
    "EXPIRED": MeshState.FAILED,
}

REPLICATE_STATUS_MAP = {
    "starting": MeshState.PENDING,
    "processing": MeshState.RUNNING,
    "succeeded": MeshState.COMPLETED,
    "failed": MeshState.FAILED,
    "canceled": MeshState.FAILED,
}

TRELLIS_OUTPUT_KEYS = ("model_file", "texture_file", "gaussian_ply_file")


@dataclass
class TextMeshRequest:
    """Start-Parameter fuer Meshy Text-to-3D; None = Standardwert."""
    mode: str = "preview"
    prompt: str = ""
    preview_task_id: Optional[str] = None
    art_style: Optional[str] = None
    ai_model: Optional[str] = None
    topology: Optional[str] = None
    target_polycount: Optional[int] = None
    should_remesh: Optional[bool] = None
    symmetry_mode: Optional[str] = None
    is_a_t_pose: Optional[bool] = None
    moderation: Optional[bool] = None
    enable_pbr: Optional[bool] = None
    texture_prompt: Optional[str] = None
    texture_image_url: Optional[str] = None


@dataclass
class ImageMeshRequest:
    """Start-Parameter fuer Trellis Image-to-3D; None = Standardwert."""
    image_url: str
    prompt_3d: str = ""
    texture_size: Optional[int] = None
    mesh_simplify: Optional[float] = None
    generate_model: Optional[bool] = None
    save_gaussian_ply: Optional[bool] = None
    ss_sampling_steps: Optional[int] = None


def _pick(value, default):
    return default if value is None else value


def build_meshy_payload(request: TextMeshRequest) -> Dict[str, Any]:
    """
    Baut den Meshy-Body fuer Preview oder Refine.

    Raises:
        InputValidationError: Unbekannter Modus, Preview ohne Prompt, Refine ohne previewTaskId
    """
    if request.mode not in (MeshMode.PREVIEW.value, MeshMode.REFINE.value):
        raise InputValidationError(f"Invalid meshyMode '{request.mode}' (preview | refine)", field="meshyMode")

    payload: Dict[str, Any] = {"mode": request.mode}
    if request.mode == MeshMode.PREVIEW.value:
        prompt = (request.prompt or "").strip()
        if not prompt:
            raise InputValidationError("Missing prompt3D", field="prompt3D")
        target_polycount = request.target_polycount
        payload.update({
            "prompt": prompt,
            "art_style": _pick(request.art_style, "realistic"),
            "ai_model": _pick(request.ai_model, "latest"),
            "topology": _pick(request.topology, "triangle"),
            "target_polycount": target_polycount if isinstance(target_polycount, int) and target_polycount > 0
            else 30000,
            "should_remesh": _pick(request.should_remesh, True),
            "symmetry_mode": _pick(request.symmetry_mode, "auto"),
            "is_a_t_pose": _pick(request.is_a_t_pose, False),
            "moderation": _pick(request.moderation, False),
        })
        return payload

    preview_task_id = (request.preview_task_id or "").strip()
    if not preview_task_id:
        raise InputValidationError("previewTaskId is required when meshyMode = 'refine'", field="previewTaskId")
    payload.update({
        "preview_task_id": preview_task_id,
        "enable_pbr": _pick(request.enable_pbr, False),
        "ai_model": _pick(request.ai_model, "latest"),
        "moderation": _pick(request.moderation, False),
    })
    if (request.texture_prompt or "").strip():
        payload["texture_prompt"] = request.texture_prompt.strip()
    if (request.texture_image_url or "").strip():
        payload["texture_image_url"] = request.texture_image_url.strip()
    return payload


def build_trellis_options(request: ImageMeshRequest) -> Dict[str, Any]:
    """Trellis-Optionen; Werte ausserhalb des gueltigen Bereichs fallen auf den Standard zurueck."""
    texture_size = request.texture_size
    mesh_simplify = request.mesh_simplify
    steps = request.ss_sampling_steps
    return {
        "texture_size": texture_size if isinstance(texture_size, int) and texture_size > 0 else 2048,
        "mesh_simplify": mesh_simplify if isinstance(mesh_simplify, (int, float)) and 0 <= mesh_simplify <= 1
        else 0.9,
        "generate_model": _pick(request.generate_model, True),
        "save_gaussian_ply": _pick(request.save_gaussian_ply, True),
        "ss_sampling_steps": steps if isinstance(steps, int) and steps > 0 else 38,
    }


def _progress(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(min(100, max(0, value)))


def normalize_meshy_status(task_id: str, data: Dict[str, Any]) -> MeshTaskStatus:
    state = MESHY_STATUS_MAP.get(str(data.get("status") or "").upper(), MeshState.PENDING)
    progress = _progress(data.get("progress"))
    locators: Dict[str, str] = {}
    error_message = None

    if state == MeshState.COMPLETED:
        if data.get("progress") is None:
            progress = 100
        model_urls = data.get("model_urls")
        if isinstance(model_urls, dict):
            for fmt, url in model_urls.items():
                if isinstance(url, str) and url:
                    locators[fmt] = url
        textures = data.get("texture_urls")
        if isinstance(textures, list) and textures and isinstance(textures[0], dict):
            base_color = textures[0].get("base_color")
            if isinstance(base_color, str) and base_color:
                locators["texture_base_color"] = base_color
    elif state == MeshState.FAILED:
        task_error = data.get("task_error")
        if isinstance(task_error, dict):
            task_error = task_error.get("message")
        error_message = str(task_error) if task_error else f"Meshy task {data.get('status')}"

    thumbnail = data.get("thumbnail_url")
    return MeshTaskStatus(
        task_id=task_id,
        state=state,
        progress=progress,
        result_locators=locators,
        error_message=error_message,
        thumbnail_url=thumbnail if isinstance(thumbnail, str) else None,
    )


def normalize_replicate_status(task_id: str, data: Dict[str, Any]) -> MeshTaskStatus:
    state = REPLICATE_STATUS_MAP.get(str(data.get("status") or "").lower(), MeshState.PENDING)
    progress = _progress(data.get("progress"))
    locators: Dict[str, str] = {}
    error_message = None

    if state == MeshState.COMPLETED:
        if data.get("progress") is None:
            progress = 100
        output = data.get("output")
        if isinstance(output, dict):
            locators = {k: output[k] for k in TRELLIS_OUTPUT_KEYS if isinstance(output.get(k), str) and output[k]}
    elif state == MeshState.FAILED:
        error_message = str(data.get("error") or f"Prediction {data.get('status')}")

    return MeshTaskStatus(task_id=task_id, state=state, progress=progress,
                          result_locators=locators, error_message=error_message)


class MeshGenerationService:
    """Start und Polling von Mesh-Jobs ueber Meshy und Trellis."""

    def __init__(self, mesh_provider, image_to_mesh_provider, poll_interval: float = 5.0,
                 max_consecutive_errors: int = 3):
        self.mesh_provider = mesh_provider
        self.image_to_mesh_provider = image_to_mesh_provider
        self.poll_interval = poll_interval
        self.max_consecutive_errors = max_consecutive_errors

    def _provider_for(self, engine: MeshEngine):
        if engine == MeshEngine.TRELLIS:
            if not self.image_to_mesh_provider.check_available():
                raise ConfigurationError("Missing REPLICATE_API_TOKEN in env", config_key="image_to_mesh.api_token")
            return self.image_to_mesh_provider
        if not self.mesh_provider.check_available():
            raise ConfigurationError("Missing MESHY_API_KEY in env", config_key="mesh_provider.api_key")
        return self.mesh_provider

    async def start_text_task(self, request: TextMeshRequest) -> MeshTaskHandle:
        """
        Startet einen Meshy-Task. Nicht idempotent, daher kein automatischer Retry.

        Raises:
            InputValidationError: Vor jedem Netzwerkaufruf bei fehlenden Pflichtfeldern
            ConfigurationError: Wenn MESHY_API_KEY fehlt
            ProviderError: Wenn Meshy den Start ablehnt
        """
        payload = build_meshy_payload(request)
        provider = self._provider_for(MeshEngine.MESHY)

        result = await provider.start(payload)
        if not result.ok:
            log_event("MeshService", "StartFailed", str(result.error))
            raise result.error

        handle = MeshTaskHandle(task_id=result.value, mode=MeshMode(request.mode), engine=MeshEngine.MESHY)
        log_event("MeshService", "TaskStarted", handle.to_dict())
        return handle

    async def start_image_task(self, request: ImageMeshRequest) -> MeshStartResult:
        """
        Startet Trellis; liefert Artefakte, wenn die Prediction im Sync-Fenster
        fertig wurde, sonst ein pollbares Task-Handle.
        """
        image_url = (request.image_url or "").strip()
        if not image_url:
            raise InputValidationError("Missing imageUrl", field="imageUrl")
        options = build_trellis_options(request)
        provider = self._provider_for(MeshEngine.TRELLIS)

        result = await provider.run_image(image_url, options)
        if not result.ok:
            log_event("MeshService", "ImageStartFailed", str(result.error))
            raise result.error

        prediction = result.value
        if prediction.get("status") == "succeeded":
            output = prediction.get("output") if isinstance(prediction.get("output"), dict) else {}
            artifacts = MeshArtifacts(
                model_file=output.get("model_file") if isinstance(output.get("model_file"), str) else None,
                texture_file=output.get("texture_file") if isinstance(output.get("texture_file"), str) else None,
                gaussian_ply_file=output.get("gaussian_ply_file")
                if isinstance(output.get("gaussian_ply_file"), str) else None,
                raw=prediction.get("output"),
            )
            if not artifacts.locators():
                log_event("MeshService", "NoArtifacts", {"output": prediction.get("output")})
            log_event("MeshService", "ImageMeshReady", {**artifacts.to_dict(), "prompt3D": request.prompt_3d})
            return artifacts

        prediction_id = str(prediction.get("id") or "").strip()
        if not prediction_id:
            raise ProviderMalformedResponseError("trellis", "Prediction ohne ID")
        handle = MeshTaskHandle(task_id=prediction_id, mode=MeshMode.IMAGE, engine=MeshEngine.TRELLIS)
        log_event("MeshService", "TaskStarted", {**handle.to_dict(), "prompt3D": request.prompt_3d})
        return handle

    async def poll(self, task_id: str, engine: Any = MeshEngine.MESHY) -> MeshTaskStatus:
        """
        Fragt den aktuellen Status ab. Seiteneffektfrei und beliebig wiederholbar.

        Raises:
            InputValidationError: Ohne taskId
            ConfigurationError: Wenn der Provider nicht konfiguriert ist
            ProviderError: Wenn der Provider nicht antwortet
        """
        task_id = (task_id or "").strip()
        if not task_id:
            raise InputValidationError("Missing taskId", field="taskId")
        mesh_engine = engine if isinstance(engine, MeshEngine) else MeshEngine.parse(engine)
        provider = self._provider_for(mesh_engine)

        result = await provider.poll(task_id)
        if not result.ok:
            raise result.error
        if mesh_engine == MeshEngine.TRELLIS:
            return normalize_replicate_status(task_id, result.value)
        return normalize_meshy_status(task_id, result.value)

    def watch(self, task_id: str, engine: Any = MeshEngine.MESHY, interval: Optional[float] = None,
              on_update: Optional[Callable[[MeshTaskStatus], Any]] = None,
              sleep: Callable[[float], Any] = asyncio.sleep) -> PollingLoop:
        """
        Erzeugt eine (noch nicht gestartete) Polling-Schleife fuer einen Task.
        Jeder Status laeuft durch MeshTask.advance, Beobachter sehen nach einem
        Endzustand also nie wieder pending oder running.
        """
        task_id = (task_id or "").strip()
        if not task_id:
            raise InputValidationError("Missing taskId", field="taskId")
        mesh_engine = engine if isinstance(engine, MeshEngine) else MeshEngine.parse(engine)
        self._provider_for(mesh_engine)

        mode = MeshMode.IMAGE if mesh_engine == MeshEngine.TRELLIS else MeshMode.PREVIEW
        state = {"task": MeshTask.from_handle(MeshTaskHandle(task_id=task_id, mode=mode, engine=mesh_engine))}

        async def poll_once() -> MeshTaskStatus:
            status = await self.poll(task_id, mesh_engine)
            state["task"] = state["task"].advance(status)
            return replace(state["task"].to_status(), thumbnail_url=status.thumbnail_url)

        return PollingLoop(
            poll=poll_once,
            interval=self.poll_interval if interval is None else interval,
            is_terminal=lambda status: status.state.is_terminal,
            on_update=on_update,
            sleep=sleep,
            max_consecutive_errors=self.max_consecutive_errors,
        )
