# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Tests fuer backend/api.py und backend/routers/*.
              Die Services im studio-Singleton werden mit Fake-Providern
              neu verdrahtet; es gibt keine echten Provider-Aufrufe.
"""

import json
import os
import sys
from urllib.parse import quote

import pytest

# Projekt-Root zum Python-Path hinzufuegen
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from conftest import FakeImageProvider, FakeMeshProvider, FakeTextProvider, FakeTrellisProvider
from exceptions import (
    ConfigurationError,
    InputValidationError,
    InvariantViolationError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    StudioError,
)
from providers.base_provider import Err, Ok
from backend.api import app, error_body, status_code_for
from backend.app_state import studio
from backend.form_service import FormSynthesisService
from backend.image_service import ImageGenerationService
from backend.mesh_service import MeshGenerationService
from backend.prompt_service import PromptService


@pytest.fixture
def fakes(monkeypatch):
    """Verdrahtet das studio-Singleton mit Fake-Providern."""
    text = FakeTextProvider()
    images = FakeImageProvider()
    meshy = FakeMeshProvider(poll_results=[Ok({"status": "IN_PROGRESS", "progress": 10})])
    trellis = FakeTrellisProvider(poll_results=[Ok({"status": "processing"})])
    prompt_service = PromptService(text)

    monkeypatch.setattr(studio, "text_provider", text)
    monkeypatch.setattr(studio, "prompt_provider", text)
    monkeypatch.setattr(studio, "image_provider", images)
    monkeypatch.setattr(studio, "mesh_provider", meshy)
    monkeypatch.setattr(studio, "image_to_mesh_provider", trellis)
    monkeypatch.setattr(studio, "form_service", FormSynthesisService(text))
    monkeypatch.setattr(studio, "prompt_service", prompt_service)
    monkeypatch.setattr(studio, "image_service", ImageGenerationService(prompt_service, images))
    monkeypatch.setattr(studio, "mesh_service", MeshGenerationService(meshy, trellis, poll_interval=0))
    return {"text": text, "images": images, "meshy": meshy, "trellis": trellis}


@pytest.fixture
def client(fakes):
    return TestClient(app)


# =========================================================================
# Fehlerabbildung
# =========================================================================

class TestErrorMapping:
    """Tests fuer status_code_for() und error_body()."""

    @pytest.mark.parametrize("error,status", [
        (InputValidationError("x"), 400),
        (ConfigurationError("x"), 503),
        (ProviderTimeoutError("meshy", 60), 504),
        (ProviderUnavailableError("meshy", "x"), 502),
        (InvariantViolationError("x"), 500),
        (StudioError("x"), 500),
    ])
    def test_status(self, error, status):
        assert status_code_for(error) == status

    def test_body(self):
        assert error_body(InputValidationError("Missing idea")) == {
            "ok": False, "error": "Missing idea", "errorType": "InputValidationError",
        }


# =========================================================================
# Health
# =========================================================================

def test_health(client, fakes):
    fakes["meshy"].available = False
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["providers"] == {"text": True, "prompts": True, "image": True, "mesh": False, "imageToMesh": True}


# =========================================================================
# Formulare & Spezifikation
# =========================================================================

class TestFormsRouter:
    """Tests fuer /genai/forms/*."""

    def test_generate_fallback(self, client):
        response = client.post("/genai/forms/generate", json={"mode": "cdf", "idea": "drone"})
        assert response.status_code == 200
        data = response.json()
        assert data["usedFallback"] is True
        assert [s["id"] for s in data["form"]["sections"]] == ["context", "constraints"]

    def test_generate_synthese(self, client, fakes):
        fakes["text"].responses.append(Ok({"sections": [
            {"id": "geo", "title": "Geometry", "questions": [{"id": "size", "label": "Size?", "type": "number"}]},
        ]}))
        data = client.post("/genai/forms/generate", json={"mode": "3d", "idea": "bracket"}).json()
        assert data["usedFallback"] is False
        assert data["form"]["mode"] == "3d"
        assert data["form"]["sections"][0]["questions"][0] == {"id": "size", "label": "Size?", "type": "number"}

    def test_generate_ungueltiger_modus(self, client):
        response = client.post("/genai/forms/generate", json={"mode": "4d", "idea": "drone"})
        assert response.status_code == 400
        assert response.json()["errorType"] == "InputValidationError"

    def test_unerwarteter_fehler(self, client, monkeypatch):
        class Broken:
            async def synthesize(self, mode, context):
                raise RuntimeError("kaputt")

        monkeypatch.setattr(studio, "form_service", Broken())
        response = client.post("/genai/forms/generate", json={"mode": "cdf", "idea": "drone"})
        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "Server error in generate-form route"}

    def test_edit_form(self, client):
        data = client.post("/genai/forms/edit", json={"prototypePrompt": "sleek drone"}).json()
        assert data["usedFallback"] is True
        assert data["form"]["fields"][0]["name"] == "main_color"

    def test_edit_form_ohne_prompt(self, client):
        assert client.post("/genai/forms/edit", json={}).status_code == 400


class TestSpecificationRouter:
    """Tests fuer /genai/specification."""

    def test_dokument(self, client):
        response = client.post("/genai/specification", json={
            "source": "fromIdea",
            "idea": "Compact electric delivery drone",
            "answers": [
                {"questionId": "project_goal", "value": "deliver packages"},
                {"questionId": "target_users", "value": ""},
            ],
        })
        assert response.status_code == 200
        data = response.json()
        assert "- project_goal: deliver packages" in data["fsdText"].splitlines()
        assert "target_users" not in data["fsdText"]
        assert "Key constraints: deliver packages." in data["summaryPrompt2D"]
        assert "Key constraints for 3D: deliver packages." in data["summaryPrompt3D"]

    def test_ohne_antworten(self, client):
        response = client.post("/genai/specification", json={"idea": "drone"})
        assert response.status_code == 400

    def test_ohne_idee(self, client):
        response = client.post("/genai/specification", json={"idea": "", "answers": []})
        assert response.status_code == 400


class TestPipelineRouter:
    """Tests fuer /genai/pipeline/context."""

    def test_decode(self, client):
        data = quote(json.dumps({
            "from": "rendu-2d", "userPrompt": "drone",
            "prototype": {"id": 2, "imageUrl": "https://img/2.png", "finalPrompt": "sleek drone"},
        }), safe="")
        response = client.get(f"/genai/pipeline/context?data={data}")
        assert response.status_code == 200
        body = response.json()
        assert body["formRequest"] == {"source": "from2DPrototype", "idea": "drone", "prototypePrompt": "sleek drone"}
        assert body["specificationRequest"]["source"] == "from2D"
        assert body["context"]["prototype"]["id"] == 2

    def test_decode_ohne_parameter(self, client):
        assert client.get("/genai/pipeline/context").status_code == 400

    def test_encode(self, client):
        body = client.post("/genai/pipeline/context", json={"from": "3d", "prompt3D": "3D drone"}).json()
        assert body["formRequest"]["source"] == "from3DConcept"
        assert body["formRequest"]["idea"] == "3D drone"
        decoded = client.get("/genai/pipeline/context", params={"data": body["data"]}).json()
        assert decoded["context"] == {"from": "3d", "prompt3D": "3D drone"}


# =========================================================================
# Bilder & Prompts
# =========================================================================

class TestImagesRouter:
    """Tests fuer /genai/images/*."""

    def test_generate(self, client, fakes):
        fakes["images"].results = [Ok(""), Ok("https://img/2.png")]
        response = client.post("/genai/images/generate", json={"idea": " drone ", "numImages": 2, "views": ["front"]})
        assert response.status_code == 200
        data = response.json()
        assert data["userPrompt"] == "drone"
        assert data["mode"] == "sketch"
        assert data["downloadFormat"] == "png"
        assert data["usedFallbackPrompts"] is True
        assert [p["id"] for p in data["prototypes"]] == [1, 2]
        assert [p["imageUrl"] for p in data["prototypes"]] == ["", "https://img/2.png"]
        assert all(p["source"] == "initial" for p in data["prototypes"])

    def test_generate_ohne_token(self, client, fakes):
        fakes["images"].available = False
        response = client.post("/genai/images/generate", json={"idea": "drone"})
        assert response.status_code == 503
        assert response.json()["errorType"] == "ConfigurationError"
        assert "REPLICATE_API_TOKEN" in response.json()["error"]

    def test_generate_ohne_ansichten(self, client):
        assert client.post("/genai/images/generate", json={"idea": "drone", "views": []}).status_code == 400

    def test_generate_schema_fehler(self, client):
        assert client.post("/genai/images/generate", json={"idea": "drone", "numImages": "viele"}).status_code == 422

    def test_edit(self, client):
        response = client.post("/genai/images/edit", json={
            "userPrompt": "drone",
            "basePrototype": {"id": 2, "imageUrl": "https://img/2.png", "finalPrompt": "sleek drone"},
            "editValues": {"main_color": "red"},
        })
        assert response.status_code == 200
        proto = response.json()["newPrototype"]
        assert proto["id"] == 3
        assert proto["source"] == "edit"
        assert proto["imageUrl"] == "https://img.test/1.png"

    def test_edit_ohne_basis(self, client):
        assert client.post("/genai/images/edit", json={"userPrompt": "drone"}).status_code == 400


class TestPromptsRouter:
    """Tests fuer /genai/prompts/adapt-3d und /genai/cad/script."""

    def test_adapt_3d(self, client, fakes):
        fakes["text"].responses.append(Ok("3D drone body"))
        data = client.post("/genai/prompts/adapt-3d", json={"userPrompt": "drone", "prototypePrompt": "p"}).json()
        assert data == {"ok": True, "prompt3D": "3D drone body", "usedFallback": False}

    def test_adapt_3d_fehlende_eingabe(self, client):
        assert client.post("/genai/prompts/adapt-3d", json={"userPrompt": "drone"}).status_code == 400

    def test_cad_script(self, client):
        data = client.post("/genai/cad/script", json={"fsdText": "spec", "targetLibrary": "freecad"}).json()
        assert data["usedFallback"] is True
        assert "import FreeCAD as App" in data["pythonScript"]

    def test_cad_script_ohne_eingabe(self, client):
        assert client.post("/genai/cad/script", json={}).status_code == 400


# =========================================================================
# Mesh
# =========================================================================

class TestMeshRouter:
    """Tests fuer /genai/mesh/*."""

    def test_ungueltige_aktion(self, client):
        response = client.post("/genai/mesh/text", json={"action": "delete"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action (must be 'start' or 'status')"

    def test_start(self, client, fakes):
        response = client.post("/genai/mesh/text", json={"action": "start", "prompt3D": "drone", "targetPolycount": 5000})
        assert response.status_code == 200
        assert response.json() == {"ok": True, "kind": "task", "taskId": "task-123", "mode": "preview", "engine": "meshy"}
        assert fakes["meshy"].start_calls[0]["target_polycount"] == 5000

    def test_refine_ohne_preview_id(self, client, fakes):
        response = client.post("/genai/mesh/text", json={"action": "start", "meshyMode": "refine"})
        assert response.status_code == 400
        assert fakes["meshy"].start_calls == []

    def test_start_ohne_key(self, client, fakes):
        fakes["meshy"].available = False
        response = client.post("/genai/mesh/text", json={"action": "start", "prompt3D": "drone"})
        assert response.status_code == 503

    def test_status(self, client):
        data = client.post("/genai/mesh/text", json={"action": "status", "taskId": "t1"}).json()
        assert data["taskId"] == "t1"
        assert data["state"] == "running"
        assert data["progress"] == 10

    def test_image_artefakte(self, client, fakes):
        fakes["trellis"].run_result = Ok({"id": "p1", "status": "succeeded", "output": {"model_file": "https://r/m.glb"}})
        data = client.post("/genai/mesh/image", json={"imageUrl": "https://img/1.png", "textureSize": 1024}).json()
        assert data["kind"] == "artifacts"
        assert data["modelFile"] == "https://r/m.glb"
        assert fakes["trellis"].run_calls[0]["options"]["texture_size"] == 1024

    def test_image_task(self, client):
        data = client.post("/genai/mesh/image", json={"imageUrl": "https://img/1.png"}).json()
        assert data == {"ok": True, "kind": "task", "taskId": "pred-1", "mode": "image", "engine": "trellis"}

    def test_status_route_trellis(self, client, fakes):
        response = client.get("/genai/mesh/status/p1?engine=trellis")
        assert response.status_code == 200
        assert response.json()["state"] == "running"
        assert fakes["trellis"].poll_calls == ["p1"]

    def test_status_provider_fehler(self, client, fakes):
        fakes["meshy"].poll_results = [Err(ProviderUnavailableError("meshy", "down"))]
        assert client.get("/genai/mesh/status/t1").status_code == 502

    def test_status_timeout(self, client, fakes):
        fakes["meshy"].poll_results = [Err(ProviderTimeoutError("meshy", 60))]
        assert client.get("/genai/mesh/status/t1").status_code == 504


class TestMeshWatch:
    """Tests fuer den WebSocket /genai/mesh/watch."""

    def test_updates_bis_endzustand(self, client, fakes):
        fakes["meshy"].poll_results = [
            Ok({"status": "IN_PROGRESS", "progress": 40}),
            Ok({"status": "SUCCEEDED", "model_urls": {"glb": "https://m/t1.glb"}}),
        ]
        with client.websocket_connect("/genai/mesh/watch") as ws:
            ws.send_json({"taskId": "t1"})
            first = ws.receive_json()
            second = ws.receive_json()
        assert first["type"] == "status"
        assert first["state"] == "running"
        assert second["state"] == "completed"
        assert second["progress"] == 100
        assert second["resultLocators"] == {"glb": "https://m/t1.glb"}

    def test_ohne_task_id(self, client):
        with client.websocket_connect("/genai/mesh/watch") as ws:
            ws.send_json({"engine": "meshy"})
            message = ws.receive_json()
        assert message["type"] == "error"
        assert message["errorType"] == "InputValidationError"

    def test_kein_json(self, client):
        with client.websocket_connect("/genai/mesh/watch") as ws:
            ws.send_text("hallo")
            message = ws.receive_json()
        assert message["type"] == "error"

    def test_provider_faellt_aus(self, client, fakes):
        fakes["meshy"].poll_results = [Err(ProviderUnavailableError("meshy", "down"))]
        with client.websocket_connect("/genai/mesh/watch") as ws:
            ws.send_json({"taskId": "t1"})
            message = ws.receive_json()
        assert message["type"] == "error"
        assert message["errorType"] == "ProviderUnavailableError"
