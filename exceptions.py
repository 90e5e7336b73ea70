# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Prototype Studio Exception Hierarchy
              Standardisierte Exceptions fuer konsistente Fehlerbehandlung
              zwischen Provider-Adaptern, Services und HTTP-Routern.
"""

from typing import Optional, Any


class StudioError(Exception):
    """
    Basis-Exception fuer alle Prototype-Studio-Fehler.
    Alle benutzerdefinierten Exceptions sollten von dieser Klasse erben.
    """

    def __init__(self, message: str, details: Optional[Any] = None):
        """
        Args:
            message: Beschreibende Fehlermeldung
            details: Optionale zusaetzliche Details (z.B. Kontext, Daten)
        """
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ==================== Configuration Exceptions ====================

class ConfigurationError(StudioError):
    """
    Wird ausgeloest bei Konfigurationsfehlern, z.B. fehlenden Provider-Credentials.
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        """
        Args:
            message: Fehlerbeschreibung
            config_key: Der fehlerhafte Konfigurationsschluessel
        """
        self.config_key = config_key
        prefix = f"[config.{config_key}] " if config_key else ""
        super().__init__(f"{prefix}{message}")


class ConfigKeyMissingError(ConfigurationError):
    """Wird ausgeloest, wenn ein erforderlicher Konfigurationsschluessel fehlt."""

    def __init__(self, key: str):
        super().__init__(f"Erforderlicher Schluessel fehlt: {key}", config_key=key)


# ==================== Validation Exceptions ====================

class InputValidationError(StudioError):
    """
    Wird ausgeloest bei fehlerhaften Eingaben des Aufrufers.
    Wird IMMER vor dem ersten Provider-Aufruf geprueft.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        """
        Args:
            message: Beschreibung der verletzten Bedingung
            field: Name des betroffenen Eingabefelds (falls bekannt)
        """
        self.field = field
        super().__init__(message)


class InvariantViolationError(StudioError):
    """
    Wird ausgeloest, wenn eine Provider-Antwort eine Invariante verletzt,
    die nicht repariert werden kann (z.B. doppelte Fragen-IDs).
    """

    def __init__(self, message: str, item_id: Optional[str] = None):
        self.item_id = item_id
        super().__init__(message, details=item_id)


# ==================== Provider Exceptions ====================

class ProviderError(StudioError):
    """
    Basisklasse fuer Fehler externer KI-Provider (Text, Bild, 3D).
    """

    def __init__(
        self,
        provider: str,
        message: str,
        original_error: Optional[Exception] = None
    ):
        """
        Args:
            provider: Name des Providers (z.B. "gemini", "replicate", "meshy")
            message: Beschreibung des Fehlers
            original_error: Die urspruengliche Exception (falls vorhanden)
        """
        self.provider = provider
        self.original_error = original_error
        super().__init__(
            f"[{provider}] {message}",
            details=str(original_error) if original_error else None
        )


class ProviderUnavailableError(ProviderError):
    """Netzwerkfehler oder Nicht-Erfolgs-Status des Providers."""
    pass


class ProviderMalformedResponseError(ProviderError):
    """Leere oder nicht parsebare Antwort des Providers."""
    pass


class ProviderTimeoutError(ProviderError):
    """Wird ausgeloest, wenn ein Provider das Zeitlimit ueberschreitet."""

    def __init__(self, provider: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            provider,
            f"Keine Antwort innerhalb von {timeout_seconds}s"
        )
