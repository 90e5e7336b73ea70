# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Prompt-Services der Pipeline.
              - N Bild-Prompts pro Batch (mit Mengenkorrektur und Baseline-Fallback)
              - Edit-Prompt fuer Prototyp I+1
              - Adaption eines 2D-Prompts auf 3D
              - Entwurf eines parametrischen CAD-Skripts
              Jede Methode definiert ihren Fallback VOR dem Provider-Aufruf.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from exceptions import InputValidationError
from logger_utils import log_event

CAD_LIBRARIES = ("cadquery", "freecad", "generic")

PADDING_SUFFIX = " (alternate variation)"


@dataclass
class DesignPromptContext:
    mode: str
    views: List[str]
    has_image: bool
    num_images: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "views": list(self.views),
            "hasImage": self.has_image,
            "numImages": self.num_images,
        }


@dataclass
class PromptBatch:
    prompts: List[str]
    used_fallback: bool


@dataclass
class PromptResult:
    text: str
    used_fallback: bool


@dataclass
class CadScriptDraft:
    python_script: str
    notes: str
    used_fallback: bool


# ============================================================================
# BASELINE-PROMPTS (ohne LLM)
# ============================================================================

def build_baseline_prompts(idea: str, context: DesignPromptContext) -> List[str]:
    """Ein gemeinsamer Kern pro Idee, je Variante ein eigener Schwerpunkt."""
    views_text = ", ".join(context.views) if context.views else "front"
    if context.mode == "sketch":
        render_style = "Technical CAD-style sketch, clean black lines, no background noise."
    else:
        render_style = "Photorealistic industrial product render, realistic materials, soft studio lighting."
    if context.has_image:
        image_hint = "The user also provided a reference image that should strongly guide the style and geometry."
    else:
        image_hint = "No reference image is provided. Infer a coherent design from the idea only."

    base = (
        "Industrial design prompt:\n\n"
        f"User design idea:\n{idea}\n\n"
        "Rendering requirements:\n"
        f"- Style: {render_style}\n"
        f"- Views: {views_text}\n"
        "- Suitable for CAD concept exploration.\n"
        "- Emphasize geometry, proportions, functional features.\n"
        "- Avoid text, UI, logos, watermarks.\n\n"
        f"Additional:\n{image_hint}\n\n"
        "Return ONE English prompt line suitable for an image model (ID-Sketch or Stable Diffusion 3.5)."
    )
    return [
        f"{base}\n\nVariant focus: concept variation #{variant} with meaningful design changes from the others."
        for variant in range(1, context.num_images + 1)
    ]


def correct_quantity(prompts: Sequence[str], target: int) -> List[str]:
    """
    Bringt eine Prompt-Liste auf genau target Eintraege.
    Zu viele werden abgeschnitten, zu wenige durch zyklische Wiederholung
    mit dem Suffix " (alternate variation)" aufgefuellt.
    """
    prompts = list(prompts)
    if not prompts or target <= 0:
        return []
    if len(prompts) >= target:
        return prompts[:target]
    extended = list(prompts)
    while len(extended) < target:
        base = prompts[len(extended) % len(prompts)]
        extended.append(f"{base}{PADDING_SUFFIX}")
    return extended


def build_cad_fallback(spec_text: str, concept_prompt: str, target_library: str) -> str:
    """Deterministisches Skript-Geruest mit den ueblichen Hauptmassen."""
    summary = (concept_prompt or spec_text or "").strip().splitlines()
    summary_line = summary[0][:120] if summary else "concept"
    header = (
        f'"""\nParametric skeleton for: {summary_line}\n'
        "All dimensions are placeholders and need manual refinement.\n"
        '"""\n\n'
        "# Key dimensions (mm)\n"
        "width = 100.0\n"
        "depth = 60.0\n"
        "height = 40.0\n"
        "wall_thickness = 3.0\n"
        "fillet_radius = 2.0\n\n"
    )
    if target_library == "cadquery":
        body = (
            "import cadquery as cq\n\n"
            "# Main volume from the functional specification\n"
            "body = cq.Workplane(\"XY\").box(width, depth, height)\n"
            "# Hollow shell; approximation of the functional envelope\n"
            "body = body.faces(\">Z\").shell(-wall_thickness)\n"
            "body = body.edges(\"|Z\").fillet(fillet_radius)\n\n"
            "cq.exporters.export(body, \"concept.step\")\n"
        )
    elif target_library == "freecad":
        body = (
            "import FreeCAD as App\n"
            "import Part\n\n"
            "doc = App.newDocument(\"Concept\")\n"
            "# Main volume from the functional specification\n"
            "outer = Part.makeBox(width, depth, height)\n"
            "inner = Part.makeBox(width - 2 * wall_thickness, depth - 2 * wall_thickness, height,\n"
            "                     App.Vector(wall_thickness, wall_thickness, wall_thickness))\n"
            "shell = outer.cut(inner)\n"
            "Part.show(shell)\n"
            "doc.recompute()\n"
        )
    else:
        body = (
            "# 1. Create the main volume: box(width, depth, height)\n"
            "# 2. Hollow it with wall_thickness (approximation)\n"
            "# 3. Add interfaces and fixation points from the specification\n"
            "# 4. Round external edges with fillet_radius\n"
            "# 5. Export to STEP for review\n"
        )
    return header + body


# ============================================================================
# SERVICE
# ============================================================================

class PromptService:
    """Text-Provider-gestuetzte Prompt-Erzeugung mit deterministischen Fallbacks."""

    def __init__(self, text_provider, prompt_provider=None):
        self.text_provider = text_provider
        self.prompt_provider = prompt_provider or text_provider

    async def build_design_prompts(self, idea: str, context: DesignPromptContext) -> PromptBatch:
        """
        Fordert genau context.num_images unterschiedliche Bild-Prompts an.

        Returns:
            PromptBatch mit exakt num_images Prompts; used_fallback=True bei Baseline
        """
        fallback = build_baseline_prompts(idea, context)

        system = (
            "You are an expert industrial and mechanical designer.\n"
            "Your job: from one user idea, generate several DIFFERENT high-quality English prompts\n"
            "for an image generation model (one prompt per prototype).\n\n"
            "Each prompt must describe a distinct design variant of the SAME object family,\n"
            "suitable for industrial CAD exploration (geometry, proportions, functional features).\n\n"
            "You MUST answer with STRICT JSON only, no extra text, no markdown, no commentary.\n"
            'JSON shape: {"prompts": ["prompt for prototype 1", "prompt for prototype 2", ...]}\n'
            f"Number of prompts MUST be exactly numImages = {context.num_images}."
        )
        user_content = (
            f"User idea:\n{idea}\n\n"
            f"Context (JSON):\n{json.dumps(context.to_dict(), indent=2)}\n\n"
            "Constraints:\n"
            f"- Number of prompts MUST be exactly numImages = {context.num_images}.\n"
            "- Prompts must be concise but detailed (3-6 lines), in English, no markdown.\n"
            "- Focus on geometry and proportions, materials / finishes if relevant,\n"
            "  viewpoint and environment, functional / mechanical aspects.\n"
            "- Do NOT include comments, backticks or extra text."
        )

        result = await self.prompt_provider.invoke_json(user_content, system=system)
        if not result.ok:
            log_event("PromptService", "BaselinePrompts", str(result.error))
            return PromptBatch(fallback, used_fallback=True)

        raw_prompts = result.value.get("prompts") if isinstance(result.value, dict) else None
        prompts = [p.strip() for p in raw_prompts if isinstance(p, str) and p.strip()] \
            if isinstance(raw_prompts, list) else []
        if not prompts:
            log_event("PromptService", "BaselinePrompts", "Antwort ohne gueltige prompts")
            return PromptBatch(fallback, used_fallback=True)

        if len(prompts) != context.num_images:
            log_event("PromptService", "QuantityCorrection", {
                "requested": context.num_images,
                "returned": len(prompts),
            })
        return PromptBatch(correct_quantity(prompts, context.num_images), used_fallback=False)

    async def build_edit_prompt(self, user_prompt: str, base_prompt: str,
                                edit_values: Dict[str, Any]) -> PromptResult:
        """Neuer Prompt fuer Prototyp I+1; Fallback haengt die Edits als JSON an."""
        edits_json = json.dumps(edit_values, indent=2, ensure_ascii=False)
        fallback = f"{base_prompt}\n\n# Edits:\n{edits_json}"

        instruction = (
            "You are an expert industrial designer.\n\n"
            "Goal:\n"
            "From the original user idea, the base prompt used to generate a 2D prototype,\n"
            "and a set of user edits (form values), generate ONE new English prompt\n"
            "for an image model that describes a NEW variant of the same product (prototype I+1).\n\n"
            "Output:\n- ONLY the final prompt, no explanation, no markdown.\n\n"
            "Requirements:\n"
            "- Keep the same product family and main concept.\n"
            "- Apply the edits explicitly (colors, geometry, environment, camera, etc.).\n"
            "- Stay concise but detailed (3-6 lines).\n\n"
            f"CONTEXT:\nUser prompt (original idea):\n{user_prompt}\n\n"
            f"Base prompt used for prototype I:\n{base_prompt}\n\n"
            f"User edits (JSON):\n{edits_json}"
        )
        result = await self.text_provider.invoke(instruction)
        if not result.ok:
            log_event("PromptService", "EditPromptFallback", str(result.error))
            return PromptResult(fallback, used_fallback=True)
        return PromptResult(result.value, used_fallback=False)

    async def adapt_prompt_to_3d(self, user_prompt: str, prototype_prompt: str) -> PromptResult:
        """
        Formuliert den finalen 2D-Prompt eines Prototyps als 3D-Prompt um.

        Raises:
            InputValidationError: Wenn einer der beiden Prompts fehlt
        """
        user_prompt = (user_prompt or "").strip()
        prototype_prompt = (prototype_prompt or "").strip()
        if not user_prompt or not prototype_prompt:
            raise InputValidationError("Missing userPrompt or prototypePrompt", field="prototypePrompt")

        fallback = (
            f"3D model of the following product concept: {user_prompt}. "
            f"Reference design: {prototype_prompt}. "
            "Neutral modelling perspective, clear main volumes, realistic thicknesses and functional features."
        )
        instruction = (
            "You are an expert in industrial 3D design.\n\n"
            "Goal:\n"
            "From an initial user idea and the final 2D image prompt for a prototype,\n"
            "generate ONE high-quality English prompt to create a 3D model of the SAME object.\n\n"
            "- Keep the same product concept and main characteristics.\n"
            "- Adapt the prompt to 3D (overall volume, key dimensions, thicknesses,\n"
            "  main features, materials if relevant, functional constraints).\n"
            "- If camera viewpoint is mentioned, adapt it to a neutral 3D modelling perspective.\n"
            '- Do NOT mention "2D", "render", "photo", "image"; focus on the 3D object itself.\n\n'
            "Output:\nONLY the final 3D prompt text, no explanation, no markdown.\n\n"
            f"CONTEXT:\nUser prompt (initial idea):\n{user_prompt}\n\n"
            f"2D prototype final prompt:\n{prototype_prompt}"
        )
        result = await self.text_provider.invoke(instruction)
        if not result.ok:
            log_event("PromptService", "Adapt3DFallback", str(result.error))
            return PromptResult(fallback, used_fallback=True)
        return PromptResult(result.value, used_fallback=False)

    async def draft_cad_script(self, spec_text: str = "", concept_prompt: str = "",
                               target_library: Optional[str] = None) -> CadScriptDraft:
        """
        Entwirft ein parametrisches Python-CAD-Skript.

        Raises:
            InputValidationError: Wenn weder Spezifikation noch 3D-Prompt vorliegen
                oder die Zielbibliothek unbekannt ist
        """
        spec_text = (spec_text or "").strip()
        concept_prompt = (concept_prompt or "").strip()
        library = (target_library or "generic").strip().lower()
        if not spec_text and not concept_prompt:
            raise InputValidationError("Provide at least fsdText or concept3DPrompt", field="fsdText")
        if library not in CAD_LIBRARIES:
            raise InputValidationError(
                f"Unknown targetLibrary '{target_library}' (cadquery | freecad | generic)",
                field="targetLibrary",
            )

        fallback = CadScriptDraft(
            python_script=build_cad_fallback(spec_text, concept_prompt, library),
            notes="Deterministic skeleton: main box volume with placeholder dimensions. Refine manually.",
            used_fallback=True,
        )
        instruction = (
            "You are an expert CAD engineer and Python developer.\n\n"
            "Goal:\n"
            "Generate a Python script skeleton that creates a parametric 3D model matching the functional "
            "specification.\nPrefer simple primitives and clear structure; do NOT try to fully solve every detail.\n\n"
            "Target CAD library:\n"
            '- "cadquery": use CadQuery-style code.\n'
            '- "freecad": use FreeCAD Python scripting.\n'
            '- "generic": produce clear pseudo-code with comments that can be adapted.\n\n'
            'Output ONLY JSON: {"pythonScript": "full Python code as a string", "notes": "short explanation"}\n\n'
            "Requirements:\n"
            "- Use clear variables for key dimensions (width, height, thickness, radius, etc.).\n"
            "- Add comments that map code sections to functional requirements.\n"
            "- Highlight in comments which parts are approximations or need manual refinement.\n\n"
            f"CONTEXT:\nTarget library: {library}\n\n"
            f"FSD text (if provided):\n{spec_text or '(none)'}\n\n"
            f"3D concept prompt (if provided):\n{concept_prompt or '(none)'}"
        )
        result = await self.text_provider.invoke_json(instruction)
        if not result.ok:
            log_event("PromptService", "CadScriptFallback", str(result.error))
            return fallback

        data = result.value if isinstance(result.value, dict) else {}
        script = str(data.get("pythonScript") or "").strip()
        if not script:
            log_event("PromptService", "CadScriptFallback", "pythonScript fehlt")
            return fallback
        return CadScriptDraft(python_script=script, notes=str(data.get("notes") or "").strip(), used_fallback=False)
