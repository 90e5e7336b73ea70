# -*- coding: utf-8 -*-
"""
Config Validator: Pydantic-basierte Validierung der config.yaml
Stellt sicher, dass alle Provider-Abschnitte vorhanden und korrekt typisiert sind.
Credentials werden ueber ${VAR}-Platzhalter aus der Umgebung aufgeloest;
ein leerer Wert bedeutet "Provider nicht konfiguriert" und ist KEIN Fehler.
"""

import os
import re
import yaml
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator
from exceptions import ConfigurationError

ENV_PATTERN = r'\$\{([^}]+)\}'


def resolve_env_value(value: str) -> str:
    """
    Loest ${VAR_NAME} Platzhalter in einem Konfigurationswert auf.
    Nicht gesetzte Variablen werden zu einem leeren String.
    """
    if not isinstance(value, str):
        return value
    for var_name in re.findall(ENV_PATTERN, value):
        env_value = os.environ.get(var_name, "")
        value = value.replace(f"${{{var_name}}}", env_value)
    return value.strip()


class TextProviderConfig(BaseModel):
    """Konfiguration fuer einen Text-Provider (LLM)."""
    backend: str = Field(default="gemini", description="gemini, openrouter oder ollama")
    model: str = Field(default="gemini-2.5-flash", description="Modell-ID beim Provider")
    api_key: str = Field(default="${GEMINI_API_KEY}", description="API-Schluessel (Umgebungsvariable)")
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Basis-URL der Provider-API"
    )
    timeout_seconds: float = Field(default=60, gt=0, le=600)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validiert das Text-Backend."""
        valid_backends = ["gemini", "openrouter", "ollama"]
        if v not in valid_backends:
            raise ValueError(f"backend muss einer von {valid_backends} sein, nicht '{v}'")
        return v


class ImageProviderConfig(BaseModel):
    """Konfiguration fuer den Bild-Provider (Replicate)."""
    api_token: str = Field(default="${REPLICATE_API_TOKEN}")
    base_url: str = Field(default="https://api.replicate.com/v1")
    sketch_model: str = Field(default="orbifolia-coder/id-sketch")
    realistic_model: str = Field(default="stability-ai/stable-diffusion-3.5-large")
    timeout_seconds: float = Field(default=120, gt=0, le=900)
    max_concurrency: int = Field(
        default=1,
        ge=1,
        le=6,
        description="Parallele Bild-Aufrufe pro Batch (1 = sequentiell)"
    )


class MeshProviderConfig(BaseModel):
    """Konfiguration fuer den Text-to-3D Provider (Meshy)."""
    api_key: str = Field(default="${MESHY_API_KEY}")
    base_url: str = Field(default="https://api.meshy.ai/openapi/v2/text-to-3d")
    timeout_seconds: float = Field(default=60, gt=0, le=600)


class ImageToMeshConfig(BaseModel):
    """Konfiguration fuer den Image-to-3D Provider (Trellis auf Replicate)."""
    api_token: str = Field(default="${REPLICATE_API_TOKEN}")
    base_url: str = Field(default="https://api.replicate.com/v1")
    model: str = Field(
        default="firtoz/trellis:e8f6c45206993f297372f5436b90350817bd9b4a0d52d2a76df50c1c8afa2b3c"
    )
    timeout_seconds: float = Field(default=120, gt=0, le=900)


class PollingConfig(BaseModel):
    """Takt fuer serverseitiges Polling (WebSocket-Watch)."""
    interval_seconds: float = Field(default=5.0, ge=0.0, le=300.0)
    max_consecutive_errors: int = Field(default=3, ge=1, le=50)


class ServerConfig(BaseModel):
    """HTTP-Server Einstellungen."""
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class StudioConfig(BaseModel):
    """Hauptkonfiguration fuer Prototype Studio."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    text_provider: TextProviderConfig = Field(
        default_factory=TextProviderConfig,
        description="LLM fuer Formulare, Edit-Prompts, 3D-Adaption und CAD-Skripte"
    )
    prompt_provider: TextProviderConfig = Field(
        default_factory=TextProviderConfig,
        description="LLM fuer die Prompt-Batches der 2D-Generierung"
    )
    image_provider: ImageProviderConfig = Field(default_factory=ImageProviderConfig)
    mesh_provider: MeshProviderConfig = Field(default_factory=MeshProviderConfig)
    image_to_mesh: ImageToMeshConfig = Field(default_factory=ImageToMeshConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)

    def resolve_env_vars(self) -> "StudioConfig":
        """
        Loest Umgebungsvariablen in Credential- und URL-Feldern auf.
        Format: ${VAR_NAME}
        """
        for text_cfg in (self.text_provider, self.prompt_provider):
            text_cfg.api_key = resolve_env_value(text_cfg.api_key)
            text_cfg.base_url = resolve_env_value(text_cfg.base_url)

        self.image_provider.api_token = resolve_env_value(self.image_provider.api_token)
        self.image_provider.base_url = resolve_env_value(self.image_provider.base_url)
        self.mesh_provider.api_key = resolve_env_value(self.mesh_provider.api_key)
        self.mesh_provider.base_url = resolve_env_value(self.mesh_provider.base_url)
        self.image_to_mesh.api_token = resolve_env_value(self.image_to_mesh.api_token)
        self.image_to_mesh.base_url = resolve_env_value(self.image_to_mesh.base_url)
        return self


def load_and_validate_config(config_path: str = "config.yaml") -> StudioConfig:
    """
    Laedt und validiert die Konfigurationsdatei.

    Args:
        config_path: Pfad zur config.yaml

    Returns:
        Validierte StudioConfig-Instanz mit aufgeloesten Umgebungsvariablen

    Raises:
        ConfigurationError: Bei YAML- oder Validierungsfehlern
        FileNotFoundError: Wenn die Datei nicht existiert
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Konfigurationsdatei nicht gefunden: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML-Parsing fehlgeschlagen: {e}")

    if raw_config is None:
        raw_config = {}

    return validate_config_dict(raw_config)


def validate_config_dict(config_dict: Dict[str, Any]) -> StudioConfig:
    """
    Validiert ein Konfigurations-Dictionary und loest Umgebungsvariablen auf.

    Args:
        config_dict: Dictionary mit Konfigurationswerten

    Returns:
        Validierte StudioConfig-Instanz
    """
    try:
        config = StudioConfig(**config_dict)
    except Exception as e:
        raise ConfigurationError(f"Validierung fehlgeschlagen: {e}")
    return config.resolve_env_vars()


def load_config_or_defaults(config_path: Optional[str] = None) -> StudioConfig:
    """
    Laedt die Konfiguration; ohne Datei werden die Standardwerte verwendet.
    Fehlende Credentials fuehren nie zum Absturz, nur zu Fallbacks.

    Args:
        config_path: Pfad zur config.yaml (Default: STUDIO_CONFIG oder ./config.yaml)
    """
    path = config_path or os.getenv("STUDIO_CONFIG", "config.yaml")
    if not os.path.exists(path):
        return StudioConfig().resolve_env_vars()
    return load_and_validate_config(path)
