# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: 3D-Mesh-Endpunkte - Meshy Text-to-3D, Trellis Image-to-3D,
              Status-Abfrage und WebSocket-Watch bis zum Endzustand.
"""

import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from exceptions import InputValidationError, StudioError
from ..api_logging import log_event, server_error_response
from ..app_state import WS_RECEIVE_TIMEOUT, studio
from ..mesh_service import ImageMeshRequest, TextMeshRequest

router = APIRouter()


class TextMeshBody(BaseModel):
    action: Optional[str] = None
    meshyMode: Optional[str] = "preview"
    prompt3D: Optional[str] = ""
    previewTaskId: Optional[str] = None
    artStyle: Optional[str] = None
    aiModel: Optional[str] = None
    topology: Optional[str] = None
    targetPolycount: Optional[int] = None
    shouldRemesh: Optional[bool] = None
    symmetryMode: Optional[str] = None
    isTPose: Optional[bool] = None
    moderation: Optional[bool] = None
    enablePbr: Optional[bool] = None
    texturePrompt: Optional[str] = None
    textureImageUrl: Optional[str] = None
    taskId: Optional[str] = None


class ImageMeshBody(BaseModel):
    imageUrl: Optional[str] = ""
    prompt3D: Optional[str] = ""
    textureSize: Optional[int] = None
    meshSimplify: Optional[float] = None
    generateModel: Optional[bool] = None
    saveGaussianPly: Optional[bool] = None
    ssSamplingSteps: Optional[int] = None


def _with_ok(payload: dict) -> dict:
    response = {"ok": True}
    response.update(payload)
    return response


@router.post("/mesh/text")
async def text_to_mesh(body: TextMeshBody):
    """action=start startet einen Meshy-Task, action=status fragt ihn ab."""
    if body.action not in ("start", "status"):
        raise InputValidationError("Invalid action (must be 'start' or 'status')", field="action")

    try:
        if body.action == "status":
            status = await studio.mesh_service.poll(body.taskId or "", "meshy")
            return _with_ok(status.to_dict())

        handle = await studio.mesh_service.start_text_task(TextMeshRequest(
            mode=body.meshyMode or "preview",
            prompt=body.prompt3D or "",
            preview_task_id=body.previewTaskId,
            art_style=body.artStyle,
            ai_model=body.aiModel,
            topology=body.topology,
            target_polycount=body.targetPolycount,
            should_remesh=body.shouldRemesh,
            symmetry_mode=body.symmetryMode,
            is_a_t_pose=body.isTPose,
            moderation=body.moderation,
            enable_pbr=body.enablePbr,
            texture_prompt=body.texturePrompt,
            texture_image_url=body.textureImageUrl,
        ))
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("meshy-text-to-3d", e)
    return _with_ok(handle.to_dict())


@router.post("/mesh/image")
async def image_to_mesh(body: ImageMeshBody):
    """Trellis; Artefakte direkt oder ein Task-Handle zum Weiterpollen."""
    try:
        result = await studio.mesh_service.start_image_task(ImageMeshRequest(
            image_url=body.imageUrl or "",
            prompt_3d=body.prompt3D or "",
            texture_size=body.textureSize,
            mesh_simplify=body.meshSimplify,
            generate_model=body.generateModel,
            save_gaussian_ply=body.saveGaussianPly,
            ss_sampling_steps=body.ssSamplingSteps,
        ))
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("trellis-image-to-3d", e)
    return _with_ok(result.to_dict())


@router.get("/mesh/status/{task_id}")
async def mesh_status(task_id: str, engine: str = Query(default="meshy")):
    try:
        status = await studio.mesh_service.poll(task_id, engine)
    except StudioError:
        raise
    except Exception as e:
        return server_error_response("mesh-status", e)
    return _with_ok(status.to_dict())


@router.websocket("/mesh/watch")
async def watch_mesh(websocket: WebSocket):
    """
    Erste Nachricht: {taskId, engine?, intervalSeconds?}. Danach pusht der
    Server {type: "status", ...} bis zum Endzustand und schliesst.
    """
    await websocket.accept()
    loop = None
    try:
        try:
            data = await asyncio.wait_for(websocket.receive_text(), timeout=WS_RECEIVE_TIMEOUT)
        except asyncio.TimeoutError:
            print(f"[WebSocket] Timeout - keine Nachricht seit {WS_RECEIVE_TIMEOUT}s")
            await websocket.close()
            return

        try:
            msg = json.loads(data)
        except json.JSONDecodeError:
            msg = None
        if not isinstance(msg, dict):
            await websocket.send_json({"type": "error", "errorType": "InputValidationError",
                                       "error": "Expected JSON object {taskId, engine?, intervalSeconds?}"})
            await websocket.close()
            return

        async def push(status):
            payload = {"type": "status"}
            payload.update(status.to_dict())
            await websocket.send_json(payload)

        interval = msg.get("intervalSeconds")
        try:
            loop = studio.mesh_service.watch(
                str(msg.get("taskId") or ""),
                msg.get("engine") or "meshy",
                interval=float(interval) if isinstance(interval, (int, float)) and interval > 0 else None,
                on_update=push,
            )
        except StudioError as e:
            await websocket.send_json({"type": "error", "errorType": type(e).__name__, "error": str(e)})
            await websocket.close()
            return

        log_event("Mesh", "WatchStarted", msg.get("taskId"))
        await loop.start().wait()
        if loop.last_error is not None and (loop.last_status is None or not loop.last_status.state.is_terminal):
            await websocket.send_json({"type": "error", "errorType": type(loop.last_error).__name__,
                                       "error": str(loop.last_error)})
        await websocket.close()
    except WebSocketDisconnect:
        log_event("Mesh", "WatchDisconnected", "Client hat die Verbindung beendet")
    finally:
        if loop is not None:
            loop.stop()
