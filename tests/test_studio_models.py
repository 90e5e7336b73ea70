# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Tests fuer studio_models.py.
              Enum-Parser, Antwort-Normalisierung, Prototyp-Serialisierung,
              MeshTask-Zustandsmaschine und Pipeline-Kontext.
"""

import json
import os
import sys
from urllib.parse import quote

import pytest

# Projekt-Root zum Python-Path hinzufuegen
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exceptions import InputValidationError
from studio_models import (
    Answer,
    FormMode,
    FormSource,
    MeshEngine,
    MeshMode,
    MeshState,
    MeshTask,
    MeshTaskHandle,
    MeshTaskStatus,
    PipelineContext,
    Prototype,
    Provenance,
    Question,
    QuestionOption,
    QuestionType,
    SpecificationSource,
    normalize_answer_value,
)


# =========================================================================
# Enums
# =========================================================================

class TestEnumParser:
    """Tests fuer die parse()-Methoden der Enums."""

    @pytest.mark.parametrize("value,expected", [
        ("cdf", FormMode.CDF), ("spec", FormMode.CDF), ("3d", FormMode.CONCEPT_3D),
        ("concept3d", FormMode.CONCEPT_3D), (" CDF ", FormMode.CDF),
    ])
    def test_form_mode_aliase(self, value, expected):
        assert FormMode.parse(value) == expected

    @pytest.mark.parametrize("value", [None, "", "4d"])
    def test_form_mode_ungueltig(self, value):
        with pytest.raises(InputValidationError) as exc:
            FormMode.parse(value)
        assert exc.value.field == "mode"

    def test_form_source_default_idea(self):
        assert FormSource.parse(None) == FormSource.IDEA
        assert FormSource.parse("from2DPrototype") == FormSource.FROM_2D_PROTOTYPE

    def test_form_source_unbekannt(self):
        with pytest.raises(InputValidationError):
            FormSource.parse("fromNowhere")

    def test_specification_source_aliase(self):
        assert SpecificationSource.parse("from2DPrototype") == SpecificationSource.FROM_2D
        assert SpecificationSource.parse("from3D") == SpecificationSource.FROM_3D
        assert SpecificationSource.parse("irgendwas") == SpecificationSource.FROM_IDEA

    @pytest.mark.parametrize("value,expected", [
        ("multi-select", QuestionType.MULTI_SELECT),
        ("textarea", QuestionType.LONG_TEXT),
        ("number", QuestionType.NUMBER),
        ("slider", QuestionType.SHORT_TEXT),
        (None, QuestionType.SHORT_TEXT),
    ])
    def test_question_type_tolerant(self, value, expected):
        assert QuestionType.parse(value) == expected

    def test_mesh_engine(self):
        assert MeshEngine.parse(None) == MeshEngine.MESHY
        assert MeshEngine.parse("Trellis") == MeshEngine.TRELLIS
        with pytest.raises(InputValidationError):
            MeshEngine.parse("blender")

    def test_terminale_zustaende(self):
        assert MeshState.COMPLETED.is_terminal
        assert MeshState.FAILED.is_terminal
        assert not MeshState.RUNNING.is_terminal
        assert not MeshState.PENDING.is_terminal


# =========================================================================
# Antworten & Fragen
# =========================================================================

class TestAnswers:
    """Tests fuer normalize_answer_value und Answer."""

    @pytest.mark.parametrize("value,expected", [
        (["carbon", "aluminium"], "carbon, aluminium"),
        (2.0, "2"),
        (2.5, "2.5"),
        (12, "12"),
        (True, "true"),
        ("  must carry 2kg ", "must carry 2kg"),
        (None, ""),
        ([], ""),
    ])
    def test_normalisierung(self, value, expected):
        assert normalize_answer_value(value) == expected

    def test_from_dict_camel_case(self):
        answer = Answer.from_dict({"questionId": "project_goal", "value": "deliver packages"})
        assert answer.question_id == "project_goal"
        assert answer.normalized == "deliver packages"

    def test_from_dict_ohne_question_id(self):
        with pytest.raises(InputValidationError):
            Answer.from_dict({"value": "x"})

    def test_from_dict_kein_objekt(self):
        with pytest.raises(InputValidationError):
            Answer.from_dict("project_goal=x")

    def test_options_nur_bei_select(self):
        text_q = Question(id="q1", label="Farbe?")
        select_q = Question(id="q2", label="Material?", type=QuestionType.SELECT,
                            options=[QuestionOption("pla", "PLA")])
        assert "options" not in text_q.to_dict()
        assert select_q.to_dict()["options"] == [{"value": "pla", "label": "PLA"}]


# =========================================================================
# Prototyp
# =========================================================================

class TestPrototype:
    """Tests fuer Prototype.from_dict / to_dict."""

    def test_to_dict_ui_form(self):
        proto = Prototype(ordinal=2, image_url="https://img/2.png", prompt="drone", provenance=Provenance.EDIT)
        assert proto.to_dict() == {
            "id": 2, "imageUrl": "https://img/2.png", "finalPrompt": "drone", "source": "edit",
        }

    def test_from_dict(self):
        proto = Prototype.from_dict({"id": "3", "imageUrl": "u", "finalPrompt": "p"})
        assert proto.ordinal == 3
        assert proto.provenance == Provenance.INITIAL

    def test_from_dict_ungueltige_id(self):
        with pytest.raises(InputValidationError):
            Prototype.from_dict({"id": "drei", "finalPrompt": "p"})


# =========================================================================
# MeshTask Zustandsmaschine
# =========================================================================

def _status(state, progress=0, task_id="t1", locators=None, error=None):
    return MeshTaskStatus(task_id=task_id, state=state, progress=progress,
                          result_locators=locators or {}, error_message=error)


class TestMeshTask:
    """Tests fuer MeshTask.advance()."""

    def _task(self):
        return MeshTask.from_handle(MeshTaskHandle(task_id="t1", mode=MeshMode.PREVIEW))

    def test_start_pending(self):
        task = self._task()
        assert task.state == MeshState.PENDING
        assert task.engine == MeshEngine.MESHY

    def test_running_bis_completed(self):
        task = self._task().advance(_status(MeshState.RUNNING, 40))
        assert task.state == MeshState.RUNNING
        task = task.advance(_status(MeshState.COMPLETED, 100, locators={"glb": "https://m/t1.glb"}))
        assert task.state == MeshState.COMPLETED
        assert task.result_locators == {"glb": "https://m/t1.glb"}

    def test_endzustand_wird_nie_verlassen(self):
        task = self._task().advance(_status(MeshState.COMPLETED, 100, locators={"glb": "x"}))
        for state in (MeshState.PENDING, MeshState.RUNNING, MeshState.FAILED):
            assert task.advance(_status(state, 10)).state == MeshState.COMPLETED

    def test_failed_bleibt_failed(self):
        task = self._task().advance(_status(MeshState.FAILED, error="quota exceeded"))
        assert task.error_message == "quota exceeded"
        assert task.advance(_status(MeshState.RUNNING, 50)).state == MeshState.FAILED

    def test_running_faellt_nicht_auf_pending(self):
        task = self._task().advance(_status(MeshState.RUNNING, 30)).advance(_status(MeshState.PENDING, 0))
        assert task.state == MeshState.RUNNING
        assert task.progress == 30

    def test_fremde_task_id_ignoriert(self):
        task = self._task()
        assert task.advance(_status(MeshState.COMPLETED, 100, task_id="other")) is task

    def test_locators_nur_bei_completed(self):
        task = self._task().advance(_status(MeshState.RUNNING, 20, locators={"glb": "zu frueh"}))
        assert task.result_locators == {}

    def test_handle_to_dict(self):
        handle = MeshTaskHandle(task_id="t9", mode=MeshMode.REFINE)
        assert handle.to_dict() == {"kind": "task", "taskId": "t9", "mode": "refine", "engine": "meshy"}


# =========================================================================
# Pipeline-Kontext
# =========================================================================

class TestPipelineContext:
    """Tests fuer PipelineContext (Query-Parameter "data")."""

    def test_studio_round_trip(self):
        ctx = PipelineContext(origin="studio", idea="Compact electric delivery drone")
        decoded = PipelineContext.decode(ctx.encode())
        assert decoded == ctx
        assert decoded.form_source == FormSource.IDEA
        assert decoded.specification_source == SpecificationSource.FROM_IDEA

    def test_rendu_2d_mit_prototyp(self):
        ctx = PipelineContext.from_dict({
            "from": "rendu-2d",
            "userPrompt": "drone",
            "prototype": {"id": 2, "imageUrl": "https://img/2.png", "finalPrompt": "sleek drone, front view"},
        })
        assert ctx.form_source == FormSource.FROM_2D_PROTOTYPE
        assert ctx.specification_source == SpecificationSource.FROM_2D
        assert ctx.prior_context == "sleek drone, front view"
        assert ctx.to_dict()["prototype"] == {
            "id": 2, "imageUrl": "https://img/2.png", "finalPrompt": "sleek drone, front view",
        }

    def test_3d_nutzt_prompt_als_idee(self):
        ctx = PipelineContext.from_dict({"from": "3d", "prompt3D": "3D model of a drone"})
        assert ctx.idea_text == "3D model of a drone"
        assert ctx.form_source == FormSource.FROM_3D_CONCEPT

    def test_decode_bereits_dekodiert(self):
        """Starlette liefert Query-Parameter schon einmal dekodiert."""
        raw = json.dumps({"from": "studio", "idea": "Lampe"})
        assert PipelineContext.decode(raw).idea == "Lampe"

    def test_decode_doppelt_kodiert(self):
        raw = quote(json.dumps({"from": "studio", "idea": "Lampe"}), safe="")
        assert PipelineContext.decode(raw).idea == "Lampe"

    @pytest.mark.parametrize("param", [None, "", "kein-json", quote("{kaputt", safe="")])
    def test_decode_fehler(self, param):
        with pytest.raises(InputValidationError) as exc:
            PipelineContext.decode(param)
        assert exc.value.field == "data"

    def test_unbekannte_herkunft(self):
        with pytest.raises(InputValidationError):
            PipelineContext.from_dict({"from": "4d"})
