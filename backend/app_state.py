# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Zentrale App-Objekte fuer die FastAPI-Router.
              Konfiguration, Provider-Adapter und Services werden einmal
              verdrahtet; die Services selbst halten keinen Zustand zwischen Requests.
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv

from config_validator import StudioConfig, load_config_or_defaults
from providers.meshy_provider import MeshyMeshProvider
from providers.replicate_provider import ReplicateImageProvider, ReplicateMeshProvider
from providers.text_providers import create_text_provider
from .form_service import FormSynthesisService
from .image_service import ImageGenerationService
from .mesh_service import MeshGenerationService
from .prompt_service import PromptService

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(_project_root, ".env"))

# Wartezeit auf die erste Nachricht eines Watch-WebSockets
WS_RECEIVE_TIMEOUT = 60.0


class StudioState:
    """Haelt Konfiguration, Provider und Services des laufenden Servers."""

    def __init__(self, config: Optional[StudioConfig] = None):
        self.configure(config or load_config_or_defaults())

    def configure(self, config: StudioConfig) -> None:
        """(Neu-)Verdrahtung aller Provider und Services aus einer Konfiguration."""
        self.config = config

        self.text_provider = create_text_provider(config.text_provider)
        self.prompt_provider = create_text_provider(config.prompt_provider)
        self.image_provider = ReplicateImageProvider(
            api_token=config.image_provider.api_token,
            base_url=config.image_provider.base_url,
            sketch_model=config.image_provider.sketch_model,
            realistic_model=config.image_provider.realistic_model,
            timeout_seconds=config.image_provider.timeout_seconds,
        )
        self.mesh_provider = MeshyMeshProvider(
            api_key=config.mesh_provider.api_key,
            base_url=config.mesh_provider.base_url,
            timeout_seconds=config.mesh_provider.timeout_seconds,
        )
        self.image_to_mesh_provider = ReplicateMeshProvider(
            api_token=config.image_to_mesh.api_token,
            base_url=config.image_to_mesh.base_url,
            model=config.image_to_mesh.model,
            timeout_seconds=config.image_to_mesh.timeout_seconds,
        )

        self.form_service = FormSynthesisService(self.text_provider)
        self.prompt_service = PromptService(self.text_provider, self.prompt_provider)
        self.image_service = ImageGenerationService(
            self.prompt_service,
            self.image_provider,
            max_concurrency=config.image_provider.max_concurrency,
        )
        self.mesh_service = MeshGenerationService(
            self.mesh_provider,
            self.image_to_mesh_provider,
            poll_interval=config.polling.interval_seconds,
            max_consecutive_errors=config.polling.max_consecutive_errors,
        )

    def availability(self) -> Dict[str, bool]:
        return {
            "text": self.text_provider.check_available(),
            "prompts": self.prompt_provider.check_available(),
            "image": self.image_provider.check_available(),
            "mesh": self.mesh_provider.check_available(),
            "imageToMesh": self.image_to_mesh_provider.check_available(),
        }


studio = StudioState()
