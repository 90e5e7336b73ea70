# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Pipeline-Kontext zwischen den Seiten (Query-Parameter "data").
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from studio_models import PipelineContext

router = APIRouter()


def _derived_inputs(context: PipelineContext) -> Dict[str, Any]:
    return {
        "ok": True,
        "context": context.to_dict(),
        "formRequest": {
            "source": context.form_source.value,
            "idea": context.idea_text,
            "prototypePrompt": context.prior_context,
        },
        "specificationRequest": {
            "source": context.specification_source.value,
            "idea": context.idea_text,
            "prototypePrompt": context.prior_context,
        },
        "data": context.encode(),
    }


@router.get("/pipeline/context")
def decode_pipeline_context(data: Optional[str] = Query(default=None)):
    """Dekodiert den Kontext und leitet die Eingaben fuer Fragebogen und Spezifikation ab."""
    return _derived_inputs(PipelineContext.decode(data))


@router.post("/pipeline/context")
def encode_pipeline_context(body: Dict[str, Any]):
    """Validiert einen Kontext und liefert den kodierten Query-Parameter."""
    return _derived_inputs(PipelineContext.from_dict(body))
