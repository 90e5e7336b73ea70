# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Datenmodelle der Generierungs-Pipeline.
              Fragebogen, Antworten, Spezifikationsdokument, Prototypen,
              Mesh-Tasks und der zwischen den Seiten transportierte Pipeline-Kontext.
              Jedes Modell liefert mit to_dict() die camelCase-Form fuer die UI.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, unquote

from exceptions import InputValidationError


# ============================================================================
# ENUMS
# ============================================================================

class FormMode(Enum):
    """Fragebogen-Modus."""
    CDF = "cdf"   # Funktionale Spezifikation (NF EN 16271)
    CONCEPT_3D = "3d"

    @classmethod
    def parse(cls, value: Any) -> "FormMode":
        aliases = {"cdf": cls.CDF, "spec": cls.CDF, "3d": cls.CONCEPT_3D, "concept3d": cls.CONCEPT_3D}
        key = str(value or "").strip().lower()
        if key not in aliases:
            raise InputValidationError(
                f"Invalid or missing mode (cdf | 3d), got '{value}'", field="mode"
            )
        return aliases[key]


class FormSource(Enum):
    """Herkunft des Kontexts fuer die Fragebogen-Synthese."""
    IDEA = "idea"
    FROM_2D_PROTOTYPE = "from2DPrototype"
    FROM_3D_CONCEPT = "from3DConcept"

    @classmethod
    def parse(cls, value: Any) -> "FormSource":
        if not value:
            return cls.IDEA
        for member in cls:
            if member.value == value:
                return member
        raise InputValidationError(
            f"Invalid source '{value}' (idea | from2DPrototype | from3DConcept)", field="source"
        )


class SpecificationSource(Enum):
    """Herkunft fuer das Spezifikationsdokument."""
    FROM_IDEA = "fromIdea"
    FROM_2D = "from2D"
    FROM_3D = "from3D"

    @classmethod
    def parse(cls, value: Any) -> "SpecificationSource":
        aliases = {
            "fromIdea": cls.FROM_IDEA,
            "idea": cls.FROM_IDEA,
            "from2D": cls.FROM_2D,
            "from2DPrototype": cls.FROM_2D,
            "from3D": cls.FROM_3D,
            "from3DConcept": cls.FROM_3D,
        }
        # Unbekannte Quellen werden wie eine direkte Idee behandelt
        return aliases.get(str(value or ""), cls.FROM_IDEA)


class QuestionType(Enum):
    """Geschlossene Menge der Fragetypen."""
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    NUMBER = "number"

    @classmethod
    def parse(cls, value: Any) -> "QuestionType":
        """Toleranter Parser: Schreibvarianten werden abgebildet, Unbekanntes wird short_text."""
        key = str(value or "").strip().lower()
        aliases = {
            "short-text": cls.SHORT_TEXT,
            "text": cls.SHORT_TEXT,
            "long-text": cls.LONG_TEXT,
            "textarea": cls.LONG_TEXT,
            "single_select": cls.SELECT,
            "single-select": cls.SELECT,
            "multi-select": cls.MULTI_SELECT,
            "multiselect": cls.MULTI_SELECT,
        }
        if key in aliases:
            return aliases[key]
        for member in cls:
            if member.value == key:
                return member
        return cls.SHORT_TEXT

    @property
    def is_select(self) -> bool:
        return self in (QuestionType.SELECT, QuestionType.MULTI_SELECT)


class Provenance(Enum):
    """Herkunft eines Prototyps."""
    INITIAL = "initial"
    EDIT = "edit"


class MeshState(Enum):
    """Kanonische Zustaende eines Mesh-Tasks."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MeshState.COMPLETED, MeshState.FAILED)


class MeshMode(Enum):
    PREVIEW = "preview"
    REFINE = "refine"
    IMAGE = "image"


class MeshEngine(Enum):
    """Provider hinter einem Mesh-Task."""
    MESHY = "meshy"       # Text-to-3D
    TRELLIS = "trellis"   # Image-to-3D (Replicate)

    @classmethod
    def parse(cls, value: Any) -> "MeshEngine":
        key = str(value or "meshy").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise InputValidationError(f"Unknown mesh engine '{value}' (meshy | trellis)", field="engine")


# ============================================================================
# HILFSFUNKTIONEN
# ============================================================================

AnswerValue = Union[str, int, float, List[str]]


def normalize_answer_value(value: Any) -> str:
    """
    Normalisiert einen Antwortwert zu Text.
    Listen werden mit ", " verbunden, Zahlen ohne ueberfluessiges ".0" ausgegeben.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ", ".join(normalize_answer_value(v) for v in value).strip()
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


# ============================================================================
# FRAGEBOGEN
# ============================================================================

@dataclass
class QuestionOption:
    value: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label}


@dataclass
class Question:
    """Eine typisierte Frage im Fragebogen."""
    id: str
    label: str
    type: QuestionType = QuestionType.SHORT_TEXT
    description: Optional[str] = None
    required: bool = False
    options: List[QuestionOption] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "label": self.label, "type": self.type.value}
        if self.description:
            data["description"] = self.description
        if self.required:
            data["required"] = True
        if self.type.is_select:
            data["options"] = [opt.to_dict() for opt in self.options]
        return data


@dataclass
class Section:
    id: str
    title: str
    questions: List[Question] = field(default_factory=list)
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "title": self.title}
        if self.description:
            data["description"] = self.description
        data["questions"] = [q.to_dict() for q in self.questions]
        return data


@dataclass
class Questionnaire:
    """Geordnete Liste von Sektionen fuer einen Pipeline-Lauf."""
    mode: FormMode
    sections: List[Section] = field(default_factory=list)

    def question_ids(self) -> List[str]:
        return [q.id for s in self.sections for q in s.questions]

    def to_dict(self) -> Dict[str, Any]:
        return {"mode": self.mode.value, "sections": [s.to_dict() for s in self.sections]}


@dataclass
class Answer:
    """Antwort (questionId, value) aus dem Fragebogen."""
    question_id: str
    value: AnswerValue = ""

    @property
    def normalized(self) -> str:
        return normalize_answer_value(self.value)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        if not isinstance(data, dict):
            raise InputValidationError("Each answer must be an object {questionId, value}", field="answers")
        question_id = data.get("questionId", data.get("question_id"))
        if not question_id:
            raise InputValidationError("Answer without questionId", field="answers")
        return cls(question_id=str(question_id), value=data.get("value", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"questionId": self.question_id, "value": self.value}


# ============================================================================
# SPEZIFIKATION & PROTOTYPEN
# ============================================================================

@dataclass(frozen=True)
class SpecificationDocument:
    document: str
    image_prompt: str
    mesh_prompt: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fsdText": self.document,
            "summaryPrompt2D": self.image_prompt,
            "summaryPrompt3D": self.mesh_prompt,
        }


@dataclass
class Prototype:
    """Ein generiertes 2D-Bild. Leere image_url = Generierung fuer dieses Element fehlgeschlagen."""
    ordinal: int
    image_url: str
    prompt: str
    provenance: Provenance = Provenance.INITIAL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prototype":
        if not isinstance(data, dict):
            raise InputValidationError("basePrototype must be an object", field="basePrototype")
        try:
            ordinal = int(data.get("id", data.get("ordinal", 1)))
        except (TypeError, ValueError):
            raise InputValidationError("basePrototype.id must be a number", field="basePrototype")
        source = data.get("source", Provenance.INITIAL.value)
        provenance = Provenance.EDIT if source == Provenance.EDIT.value else Provenance.INITIAL
        return cls(
            ordinal=ordinal,
            image_url=str(data.get("imageUrl", data.get("image_url", "")) or ""),
            prompt=str(data.get("finalPrompt", data.get("prompt", "")) or ""),
            provenance=provenance,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.ordinal,
            "imageUrl": self.image_url,
            "finalPrompt": self.prompt,
            "source": self.provenance.value,
        }


# ============================================================================
# EDIT-FORMULAR (2D)
# ============================================================================

EDIT_FIELD_TYPES = ("text", "textarea", "select")


@dataclass
class EditField:
    name: str
    label: str
    type: str = "text"
    placeholder: Optional[str] = None
    options: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "label": self.label, "type": self.type}
        if self.placeholder:
            data["placeholder"] = self.placeholder
        if self.type == "select":
            data["options"] = list(self.options)
        return data


@dataclass
class EditForm:
    helper_text: str
    fields: List[EditField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"helperText": self.helper_text, "fields": [f.to_dict() for f in self.fields]}


# ============================================================================
# MESH
# ============================================================================

@dataclass(frozen=True)
class MeshTaskHandle:
    """Gestarteter, noch laufender Provider-Job."""
    task_id: str
    mode: MeshMode
    engine: MeshEngine = MeshEngine.MESHY
    kind: str = field(default="task", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "taskId": self.task_id,
            "mode": self.mode.value,
            "engine": self.engine.value,
        }


@dataclass(frozen=True)
class MeshArtifacts:
    """Synchron fertiges Image-to-3D Ergebnis."""
    model_file: Optional[str] = None
    texture_file: Optional[str] = None
    gaussian_ply_file: Optional[str] = None
    raw: Any = None
    kind: str = field(default="artifacts", init=False)

    def locators(self) -> List[str]:
        return [loc for loc in (self.model_file, self.texture_file, self.gaussian_ply_file) if loc]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "modelFile": self.model_file,
            "textureFile": self.texture_file,
            "gaussianPlyFile": self.gaussian_ply_file,
        }


MeshStartResult = Union[MeshTaskHandle, MeshArtifacts]


@dataclass(frozen=True)
class MeshTaskStatus:
    """Normalisierter Status eines Poll-Aufrufs."""
    task_id: str
    state: MeshState
    progress: int = 0
    result_locators: Dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None
    thumbnail_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "state": self.state.value,
            "progress": self.progress,
            "resultLocators": dict(self.result_locators),
            "errorMessage": self.error_message,
            "thumbnailUrl": self.thumbnail_url,
        }


@dataclass(frozen=True)
class MeshTask:
    """
    Unveraenderliche Zustandsmaschine eines Mesh-Jobs.
    pending -> running -> {completed | failed}; Endzustaende bleiben bestehen.
    """
    task_id: str
    mode: MeshMode
    engine: MeshEngine = MeshEngine.MESHY
    state: MeshState = MeshState.PENDING
    progress: int = 0
    result_locators: Dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None

    @classmethod
    def from_handle(cls, handle: MeshTaskHandle) -> "MeshTask":
        return cls(task_id=handle.task_id, mode=handle.mode, engine=handle.engine)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def advance(self, status: MeshTaskStatus) -> "MeshTask":
        """
        Uebernimmt einen Poll-Status und gibt den neuen Task zurueck.

        Ein Endzustand wird nie verlassen, running faellt nie auf pending zurueck.
        Status fuer eine fremde Task-ID werden ignoriert.
        """
        if status.task_id != self.task_id or self.is_terminal:
            return self
        state = status.state
        if self.state == MeshState.RUNNING and state == MeshState.PENDING:
            state = MeshState.RUNNING
        return replace(
            self,
            state=state,
            progress=max(self.progress, status.progress),
            result_locators=dict(status.result_locators) if state == MeshState.COMPLETED else {},
            error_message=status.error_message if state == MeshState.FAILED else None,
        )

    def to_status(self) -> MeshTaskStatus:
        return MeshTaskStatus(
            task_id=self.task_id,
            state=self.state,
            progress=self.progress,
            result_locators=dict(self.result_locators),
            error_message=self.error_message,
        )


# ============================================================================
# PIPELINE-KONTEXT
# ============================================================================

PIPELINE_ORIGINS = ("studio", "rendu-2d", "3d")


@dataclass(frozen=True)
class PipelineContext:
    """
    Zwischen den Seiten transportierter Zustand (Query-Parameter "data").
    origin: studio (freie Idee), rendu-2d (ausgewaehlter 2D-Prototyp), 3d (3D-Prompt).
    """
    origin: str
    idea: str = ""
    prototype: Optional[Prototype] = None
    prompt_3d: str = ""

    def __post_init__(self):
        if self.origin not in PIPELINE_ORIGINS:
            raise InputValidationError(
                f"Unknown pipeline origin '{self.origin}' (studio | rendu-2d | 3d)", field="from"
            )

    @property
    def form_source(self) -> FormSource:
        if self.origin == "rendu-2d":
            return FormSource.FROM_2D_PROTOTYPE
        if self.origin == "3d":
            return FormSource.FROM_3D_CONCEPT
        return FormSource.IDEA

    @property
    def specification_source(self) -> SpecificationSource:
        return SpecificationSource.parse(self.form_source.value)

    @property
    def idea_text(self) -> str:
        if self.origin == "3d":
            return self.prompt_3d
        return self.idea

    @property
    def prior_context(self) -> str:
        if self.origin == "rendu-2d" and self.prototype:
            return self.prototype.prompt
        return ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"from": self.origin}
        if self.origin == "studio":
            data["idea"] = self.idea
        elif self.origin == "rendu-2d":
            data["userPrompt"] = self.idea
            if self.prototype:
                proto = self.prototype.to_dict()
                data["prototype"] = {k: proto[k] for k in ("id", "imageUrl", "finalPrompt")}
        else:
            data["prompt3D"] = self.prompt_3d
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineContext":
        if not isinstance(data, dict):
            raise InputValidationError("Pipeline context must be a JSON object", field="data")
        origin = data.get("from", "")
        if origin == "rendu-2d":
            raw_proto = data.get("prototype")
            return cls(
                origin=origin,
                idea=str(data.get("userPrompt", "") or "").strip(),
                prototype=Prototype.from_dict(raw_proto) if raw_proto else None,
            )
        if origin == "3d":
            return cls(origin=origin, prompt_3d=str(data.get("prompt3D", "") or "").strip())
        return cls(origin=origin, idea=str(data.get("idea", "") or "").strip())

    def encode(self) -> str:
        """URL-kodiertes JSON fuer den Query-Parameter "data"."""
        return quote(json.dumps(self.to_dict(), ensure_ascii=False), safe="")

    @classmethod
    def decode(cls, param: Optional[str]) -> "PipelineContext":
        if not param:
            raise InputValidationError("Missing pipeline context parameter", field="data")
        # Starlette dekodiert Query-Parameter bereits einmal
        try:
            data = json.loads(param)
        except json.JSONDecodeError:
            try:
                data = json.loads(unquote(param))
            except json.JSONDecodeError as e:
                raise InputValidationError(f"Pipeline context is not valid JSON: {e}", field="data")
        return cls.from_dict(data)
