# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Specification Synthesis Service - deterministisches
              Spezifikationsdokument (NF EN 16271) plus abgeleitete Prompts
              fuer Bild- und Mesh-Generierung. Keine Provider-Aufrufe.
"""

from typing import Any, List, Optional, Sequence

from exceptions import InputValidationError
from studio_models import Answer, SpecificationDocument, SpecificationSource

# Mehr Antworten wuerden die abgeleiteten Prompts zu lang machen
MAX_PROMPT_CONSTRAINTS = 8

SOURCE_LABELS = {
    SpecificationSource.FROM_2D: "Derived from a 2D prototype",
    SpecificationSource.FROM_3D: "Derived from a 3D concept",
    SpecificationSource.FROM_IDEA: "Directly from the initial idea",
}

NO_ANSWERS_REMARK = "No additional answers were provided in the questionnaire."


def _coerce_answers(answers: Any) -> List[Answer]:
    if not isinstance(answers, (list, tuple)):
        raise InputValidationError("Missing idea or answers in request body", field="answers")
    return [a if isinstance(a, Answer) else Answer.from_dict(a) for a in answers]


def build_document(source: SpecificationSource, idea: str, prior_context: str,
                   answers: Sequence[Answer]) -> str:
    lines = [
        "FUNCTIONAL SPECIFICATION – NF EN 16271",
        "--------------------------------------",
        "",
        "1. Context and need",
        "",
        f"Source: {SOURCE_LABELS[source]}",
        "",
        "Initial idea / need:",
        idea,
        "",
    ]

    if prior_context:
        lines.extend(["Prototype / concept used as reference:", prior_context, ""])

    lines.extend(["2. Structured requirements (from questionnaire)", ""])

    bullets = [f"- {a.question_id}: {a.normalized}" for a in answers if a.normalized]
    lines.extend(bullets if bullets else [NO_ANSWERS_REMARK])

    lines.extend([
        "",
        "3. Additional remarks",
        "",
        "This functional specification is a first synthetic version built from the structured questionnaire.",
        "It should be reviewed and completed by the engineering team before validation.",
    ])
    return "\n".join(lines)


def key_constraints(answers: Sequence[Answer]) -> str:
    """Die ersten acht nicht-leeren Antwortwerte in Antwortreihenfolge, mit "; " verbunden."""
    values = [a.normalized for a in answers if a.normalized]
    return "; ".join(values[:MAX_PROMPT_CONSTRAINTS])


def build_image_prompt(idea: str, answers: Sequence[Answer]) -> str:
    constraints = key_constraints(answers)
    constraints_part = (
        f"Key constraints: {constraints}."
        if constraints
        else "Use reasonable industrial constraints inferred from the context."
    )
    return " ".join([
        "Industrial 2D rendering from functional specification.",
        f"Main idea / system: {idea}.",
        constraints_part,
        "Generate several 2D concept images (technical sketches or realistic renders) "
        "that respect the functional needs and constraints.",
    ])


def build_mesh_prompt(idea: str, answers: Sequence[Answer]) -> str:
    constraints = key_constraints(answers)
    constraints_part = (
        f"Key constraints for 3D: {constraints}."
        if constraints
        else "Use reasonable mechanical and geometric constraints inferred from the context."
    )
    return " ".join([
        "Industrial 3D prototype from functional specification.",
        f"Main idea / system: {idea}.",
        constraints_part,
        "Generate a coherent 3D concept (mesh) suitable for CAD and structural analysis, "
        "focusing on main volumes, interfaces and constraints.",
    ])


def synthesize_specification(source: Any, idea: str, prior_context: Optional[str],
                             answers: Any) -> SpecificationDocument:
    """
    Erzeugt Dokument, Bild-Prompt und Mesh-Prompt.

    Args:
        source: SpecificationSource oder "fromIdea"/"from2D"/"from3D" (Form-Quellen als Alias)
        idea: Ausgangsidee, wird unveraendert uebernommen
        prior_context: Prompt des Referenz-Prototyps (optional)
        answers: Liste von Answer oder {questionId, value}; Reihenfolge ist relevant

    Raises:
        InputValidationError: Bei leerer Idee oder fehlender Antwortliste
    """
    idea = (idea or "").strip()
    if not idea:
        raise InputValidationError("Missing idea or answers in request body", field="idea")
    answer_list = _coerce_answers(answers)
    spec_source = source if isinstance(source, SpecificationSource) else SpecificationSource.parse(source)
    prior = (prior_context or "").strip()

    return SpecificationDocument(
        document=build_document(spec_source, idea, prior, answer_list),
        image_prompt=build_image_prompt(idea, answer_list),
        mesh_prompt=build_mesh_prompt(idea, answer_list),
    )
