# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Form Synthesis Service - erzeugt dynamische Frageboegen per LLM.
              Ein einziger Provider-Aufruf ohne Retry; jeder Fehler fuehrt sofort
              zum festen Standard-Fragebogen des jeweiligen Modus.
              Zusaetzlich: Edit-Formular fuer einen einzelnen 2D-Prototyp.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from exceptions import InputValidationError, InvariantViolationError
from logger_utils import log_event
from studio_models import (
    EDIT_FIELD_TYPES,
    EditField,
    EditForm,
    FormMode,
    FormSource,
    Question,
    QuestionOption,
    QuestionType,
    Questionnaire,
    Section,
)

MAX_EDIT_FIELDS = 10


# ============================================================================
# STANDARD-FRAGEBOEGEN
# ============================================================================

def build_default_questionnaire(mode: FormMode) -> Questionnaire:
    """Fester Fragebogen pro Modus; wird bei jedem Synthese-Fehler geliefert."""
    if mode == FormMode.CDF:
        return Questionnaire(mode=mode, sections=[
            Section(id="context", title="Project context and objectives", questions=[
                Question(id="project_goal", label="What is the main goal of this product or system?",
                         type=QuestionType.LONG_TEXT, required=True),
                Question(id="target_users", label="Who are the target users or stakeholders?",
                         type=QuestionType.LONG_TEXT),
            ]),
            Section(id="constraints", title="Main constraints", questions=[
                Question(id="functional_constraints", label="List the main functional constraints",
                         type=QuestionType.LONG_TEXT),
                Question(id="environment_constraints", label="Describe the environment and operating conditions",
                         type=QuestionType.LONG_TEXT),
            ]),
        ])

    return Questionnaire(mode=mode, sections=[
        Section(id="geometry", title="Geometry and spatial constraints", questions=[
            Question(id="bounding_volume",
                     label="Maximum bounding box dimensions (overall size the part must fit into)",
                     type=QuestionType.LONG_TEXT),
            Question(id="forbidden_zones",
                     label="Describe 3D forbidden zones where no material is allowed (passages, clearances, etc.)",
                     type=QuestionType.LONG_TEXT),
        ]),
        Section(id="loads", title="Loads and operating conditions", questions=[
            Question(id="loads_and_forces",
                     label="Describe the main loads and forces (direction, magnitude, frequency)",
                     type=QuestionType.LONG_TEXT),
            Question(id="fixation_points",
                     label="Describe fixation / anchoring points that must remain fixed in space",
                     type=QuestionType.LONG_TEXT),
        ]),
    ])


def build_default_edit_form() -> EditForm:
    return EditForm(
        helper_text=(
            "You can modify the appearance and layout of this prototype. "
            "Leave fields empty if you don't want to change them."
        ),
        fields=[
            EditField(name="main_color", label="Main color of the object", type="text",
                      placeholder="e.g. deep red, matte black, brushed aluminium"),
            EditField(name="background", label="Background / environment changes", type="textarea",
                      placeholder="e.g. neutral studio background, industrial workshop, outdoor scene..."),
            EditField(name="geometry_changes", label="Geometry changes (shape, proportions, details)",
                      type="textarea",
                      placeholder="e.g. make the chassis lower, wheels larger, add a handle on the side..."),
            EditField(name="move_or_remove_objects", label="Move / remove / add objects in the image",
                      type="textarea",
                      placeholder="e.g. remove the second chair, move the table closer to the window..."),
        ],
    )


# ============================================================================
# PROMPTS
# ============================================================================

ROLE_PREAMBLES = {
    FormMode.CDF: (
        "You are an expert in functional specification and systems engineering.\n"
        "Your goal: generate a questionnaire to build a functional specification document\n"
        "compliant with the NF EN 16271 standard."
    ),
    FormMode.CONCEPT_3D: (
        "You are an expert in mechanical design, FEA and design-for-manufacturing.\n"
        "Your goal: generate a questionnaire to collect all the information required\n"
        "to generate an accurate 3D prototype (geometry, loads, materials, manufacturing constraints)."
    ),
}

QUESTIONNAIRE_SHAPE = """Output ONLY JSON with this shape:

{{
  "mode": "{mode}",
  "sections": [
    {{
      "id": "section_id",
      "title": "Section title",
      "description": "optional short description",
      "questions": [
        {{
          "id": "question_id",
          "label": "Human readable question (FR or EN)",
          "description": "optional help text",
          "type": "short_text" | "long_text" | "select" | "multi_select" | "number",
          "required": true | false,
          "options": [
            {{ "value": "value1", "label": "Label 1" }}
          ]
        }}
      ]
    }}
  ]
}}

Requirements:
- IDs must be machine friendly (lowercase, underscore, no spaces).
- 3 to 6 sections.
- 3 to 8 questions per section.
- "options" only for select / multi_select questions.
- Questions must be SPECIFIC and directly useful to generate the final document or 3D.
- Avoid asking for information that is already obvious from the idea or prototype prompt."""

EDIT_FORM_INSTRUCTIONS = """You are an expert industrial designer and UX designer.

Goal:
Create a dynamic edit form for modifying ONE specific 2D prototype image of a product.

You must output ONLY JSON, no explanation, with this shape:

{
  "helperText": "short text to explain how to use the form",
  "fields": [
    {
      "name": "unique_machine_friendly_name",
      "label": "Human readable label",
      "type": "text" | "textarea" | "select",
      "placeholder": "optional placeholder (for text / textarea)",
      "options": ["only for select type, list of choices"]
    }
  ]
}

Requirements:
- Think about what can be changed on THIS object type only.
- Typical editable dimensions: colors / materials, relative size, shape details,
  environment / background, sub-parts, camera angle and distance, lighting mood.
- At least 4 and at most 10 fields.
- Names must be machine friendly: lowercase, underscore, no spaces.
- For fields where a few classic choices make sense, use "select" with "options".
- Fields are OPTIONAL for the user: an empty field means "no change"."""


def build_form_instruction(mode: FormMode, source: FormSource, idea: str,
                           prototype_prompt: str = "", extra_context: str = "") -> str:
    """Setzt Rollen-Praeambel, JSON-Schema und Kontextblock zu einer Anweisung zusammen."""
    context_text = (
        f"Form mode: {mode.value}\n"
        f"Source: {source.value}\n\n"
        f"Idea (if any):\n{idea or '(none)'}\n\n"
        f"Prototype prompt (if any):\n{prototype_prompt or '(none)'}\n\n"
        f"Extra context:\n{extra_context or '(none)'}"
    )
    return (
        f"{ROLE_PREAMBLES[mode]}\n\n"
        f"{QUESTIONNAIRE_SHAPE.format(mode=mode.value)}\n\n"
        f"CONTEXT:\n{context_text}"
    )


# ============================================================================
# NORMALISIERUNG
# ============================================================================

def normalize_identifier(value: Any) -> str:
    """'Project Goal' -> 'project_goal'; nur a-z, 0-9 und Unterstrich."""
    text = str(value or "").strip().lower()
    text = re.sub(r"[^a-z0-9]+", "_", text)
    return text.strip("_")


def _parse_options(raw_options: Any) -> List[QuestionOption]:
    options = []
    if not isinstance(raw_options, list):
        return options
    for raw in raw_options:
        if isinstance(raw, dict):
            value = str(raw.get("value") or "").strip()
            label = str(raw.get("label") or "").strip() or value
        else:
            value = label = str(raw or "").strip()
        if value:
            options.append(QuestionOption(value=value, label=label))
    return options


def _parse_question(raw: Dict[str, Any]) -> Question:
    if not isinstance(raw, dict):
        raise InvariantViolationError("Frage ist kein Objekt")
    question_id = normalize_identifier(raw.get("id"))
    label = str(raw.get("label") or "").strip()
    if not question_id or not label:
        raise InvariantViolationError("Frage ohne id oder label", item_id=question_id or None)

    question_type = QuestionType.parse(raw.get("type"))
    options = _parse_options(raw.get("options")) if question_type.is_select else []
    if question_type.is_select and not options:
        question_type = QuestionType.SHORT_TEXT

    description = str(raw.get("description") or "").strip() or None
    return Question(
        id=question_id,
        label=label,
        type=question_type,
        description=description,
        required=bool(raw.get("required", False)),
        options=options,
    )


def parse_questionnaire(mode: FormMode, data: Any) -> Questionnaire:
    """
    Baut einen Fragebogen aus der Provider-Antwort und repariert, was sicher
    reparierbar ist.

    Raises:
        InvariantViolationError: Bei nicht reparierbaren Verletzungen
            (keine Sektionen, fehlende id/label, doppelte Fragen-IDs)
    """
    if not isinstance(data, dict) or not isinstance(data.get("sections"), list):
        raise InvariantViolationError("Antwort enthaelt keine sections-Liste")

    sections: List[Section] = []
    seen_ids = set()
    for index, raw_section in enumerate(data["sections"]):
        if not isinstance(raw_section, dict):
            continue
        raw_questions = raw_section.get("questions")
        questions = [_parse_question(q) for q in raw_questions] if isinstance(raw_questions, list) else []
        if not questions:
            continue

        for question in questions:
            if question.id in seen_ids:
                raise InvariantViolationError("Doppelte Fragen-ID", item_id=question.id)
            seen_ids.add(question.id)

        section_id = normalize_identifier(raw_section.get("id")) or f"section_{index + 1}"
        title = str(raw_section.get("title") or "").strip() or section_id.replace("_", " ").capitalize()
        description = str(raw_section.get("description") or "").strip() or None
        sections.append(Section(id=section_id, title=title, questions=questions, description=description))

    if not sections:
        raise InvariantViolationError("Fragebogen ohne verwertbare Sektionen")
    return Questionnaire(mode=mode, sections=sections)


def parse_edit_form(data: Any) -> EditForm:
    """Baut ein Edit-Formular; select ohne Optionen wird zu text."""
    if not isinstance(data, dict) or not isinstance(data.get("fields"), list):
        raise InvariantViolationError("Antwort enthaelt keine fields-Liste")

    fields: List[EditField] = []
    seen_names = set()
    for raw in data["fields"]:
        if not isinstance(raw, dict):
            continue
        name = normalize_identifier(raw.get("name"))
        label = str(raw.get("label") or "").strip()
        if not name or not label or name in seen_names:
            continue
        seen_names.add(name)

        field_type = raw.get("type") if raw.get("type") in EDIT_FIELD_TYPES else "text"
        options = [str(o).strip() for o in raw.get("options") or [] if str(o).strip()]
        if field_type == "select" and not options:
            field_type = "text"
        placeholder = str(raw.get("placeholder") or "").strip() or None
        fields.append(EditField(
            name=name,
            label=label,
            type=field_type,
            placeholder=placeholder if field_type != "select" else None,
            options=options if field_type == "select" else [],
        ))

    if not fields:
        raise InvariantViolationError("Edit-Formular ohne verwertbare Felder")
    helper_text = str(data.get("helperText") or "").strip() or build_default_edit_form().helper_text
    return EditForm(helper_text=helper_text, fields=fields[:MAX_EDIT_FIELDS])


# ============================================================================
# SERVICE
# ============================================================================

@dataclass
class FormSynthesisResult:
    questionnaire: Questionnaire
    used_fallback: bool


@dataclass
class EditFormResult:
    form: EditForm
    used_fallback: bool


class FormSynthesisService:
    """Erzeugt Frageboegen und Edit-Formulare; Fallback statt Fehler."""

    def __init__(self, text_provider):
        self.text_provider = text_provider

    async def synthesize(self, mode: Any, context: Optional[Dict[str, Any]] = None) -> FormSynthesisResult:
        """
        Erzeugt einen Fragebogen fuer Modus und Kontext.

        Args:
            mode: FormMode oder "cdf"/"spec"/"3d"/"concept3d"
            context: dict mit source, idea, prototype_prompt, extra_context

        Raises:
            InputValidationError: Bei ungueltigem Modus oder ungueltiger Quelle
        """
        form_mode = mode if isinstance(mode, FormMode) else FormMode.parse(mode)
        context = context or {}
        source = context.get("source")
        form_source = source if isinstance(source, FormSource) else FormSource.parse(source)

        instruction = build_form_instruction(
            form_mode,
            form_source,
            str(context.get("idea") or "").strip(),
            str(context.get("prototype_prompt") or "").strip(),
            str(context.get("extra_context") or "").strip(),
        )

        result = await self.text_provider.invoke_json(instruction)
        if not result.ok:
            log_event("FormSynthesis", "Fallback", {"mode": form_mode.value, "reason": str(result.error)})
            return FormSynthesisResult(build_default_questionnaire(form_mode), used_fallback=True)

        try:
            questionnaire = parse_questionnaire(form_mode, result.value)
        except InvariantViolationError as e:
            log_event("FormSynthesis", "Fallback", {"mode": form_mode.value, "reason": str(e)})
            return FormSynthesisResult(build_default_questionnaire(form_mode), used_fallback=True)

        log_event("FormSynthesis", "Generated", {
            "mode": form_mode.value,
            "sections": len(questionnaire.sections),
            "questions": len(questionnaire.question_ids()),
        })
        return FormSynthesisResult(questionnaire, used_fallback=False)

    async def synthesize_edit_form(self, prototype_prompt: str, user_prompt: str = "") -> EditFormResult:
        """
        Erzeugt das Edit-Formular fuer einen 2D-Prototyp.

        Raises:
            InputValidationError: Wenn prototype_prompt fehlt
        """
        prototype_prompt = (prototype_prompt or "").strip()
        if not prototype_prompt:
            raise InputValidationError("Missing prototypePrompt", field="prototypePrompt")

        instruction = (
            f"{EDIT_FORM_INSTRUCTIONS}\n\n"
            f"userPrompt:\n{(user_prompt or '').strip()}\n\n"
            f"prototypePrompt:\n{prototype_prompt}"
        )
        result = await self.text_provider.invoke_json(instruction)
        if not result.ok:
            log_event("EditForm", "Fallback", str(result.error))
            return EditFormResult(build_default_edit_form(), used_fallback=True)

        try:
            form = parse_edit_form(result.value)
        except InvariantViolationError as e:
            log_event("EditForm", "Fallback", str(e))
            return EditFormResult(build_default_edit_form(), used_fallback=True)

        log_event("EditForm", "Generated", json.dumps([f.name for f in form.fields]))
        return EditFormResult(form, used_fallback=False)
