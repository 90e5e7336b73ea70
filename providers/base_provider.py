# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Gemeinsame Basis der Provider-Adapter.
              Jeder Adapter liefert ein explizites Ok/Err statt Exceptions zu werfen;
              der aufrufende Service entscheidet ueber Fallback oder Fehlermeldung.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar, Union

import aiohttp

from exceptions import (
    ConfigKeyMissingError,
    ProviderMalformedResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    StudioError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Erfolgreicher Provider-Aufruf."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Fehlgeschlagener Provider-Aufruf mit typisiertem Fehler."""
    error: StudioError

    @property
    def ok(self) -> bool:
        return False


ProviderResult = Union[Ok[T], Err]


def extract_json_text(text: str) -> str:
    """
    Entfernt Markdown-Fences und behaelt das aeusserste {...} Objekt.
    Gibt den Text unveraendert zurueck, wenn kein Objekt gefunden wird.
    """
    cleaned = (text or "").strip()
    fence = re.match(r"^```(?:json)?\s*([\s\S]*?)\s*```$", cleaned)
    if fence:
        cleaned = fence.group(1).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        return cleaned[start:end + 1]
    return cleaned


def parse_json_text(provider: str, text: str) -> ProviderResult:
    """Parst LLM-Text als JSON; Parse-Fehler werden zu ProviderMalformedResponseError."""
    candidate = extract_json_text(text)
    if not candidate:
        return Err(ProviderMalformedResponseError(provider, "Leere Antwort statt JSON"))
    try:
        return Ok(json.loads(candidate))
    except json.JSONDecodeError as e:
        return Err(ProviderMalformedResponseError(provider, "Antwort ist kein gueltiges JSON", e))


class BaseProvider:
    """
    Basisklasse mit dem gemeinsamen aiohttp-Aufruf.
    Jede Anfrage hat ein explizites Zeitlimit; Netzwerkfehler werden in
    ProviderError-Subklassen uebersetzt und nie roh weitergereicht.
    """

    name = "provider"

    def __init__(self, base_url: str, timeout_seconds: float = 60):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout_seconds = timeout_seconds

    def check_available(self) -> bool:
        """True, wenn Endpunkt und ggf. Credential konfiguriert sind."""
        return bool(self.base_url)

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _missing_credential(self, key: str) -> Err:
        return Err(ConfigKeyMissingError(key))

    async def _request_json(
        self,
        method: str,
        url: str,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> ProviderResult:
        """
        Fuehrt einen HTTP-Aufruf aus und liefert den JSON-Body.

        Returns:
            Ok(dict|list) bei 2xx mit JSON-Body, sonst Err(ProviderError)
        """
        request_headers = self._headers()
        if headers:
            request_headers.update(headers)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method,
                    url,
                    json=payload,
                    headers=request_headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
                ) as response:
                    body_text = (await response.read()).decode("utf-8", errors="replace")
                    if response.status >= 400:
                        logger.warning("%s antwortet mit HTTP %s: %s", self.name, response.status, body_text[:300])
                        return Err(ProviderUnavailableError(
                            self.name, f"HTTP {response.status}: {body_text[:300]}"
                        ))
        except asyncio.TimeoutError:
            return Err(ProviderTimeoutError(self.name, self.timeout_seconds))
        except aiohttp.ClientError as e:
            return Err(ProviderUnavailableError(self.name, "Netzwerkfehler", e))

        try:
            return Ok(json.loads(body_text) if body_text else {})
        except json.JSONDecodeError as e:
            return Err(ProviderMalformedResponseError(self.name, "Antwort ist kein JSON", e))
