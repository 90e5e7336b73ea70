# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Text-Provider (LLM) fuer Fragebogen, Prompts und Skripte.
              Gemini (Standard), OpenRouter und lokales Ollama hinter einer
              gemeinsamen Schnittstelle invoke() / invoke_json().
"""

import logging
from typing import Any, Dict, List, Optional

from config_validator import TextProviderConfig
from exceptions import ProviderMalformedResponseError
from logger_utils import log_event
from .base_provider import BaseProvider, Err, Ok, ProviderResult, parse_json_text

logger = logging.getLogger(__name__)


class BaseTextProvider(BaseProvider):
    """
    Gemeinsamer Ablauf: Credential pruefen, Backend aufrufen, Text trimmen.
    Subklassen implementieren nur _generate().
    """

    requires_credential = True

    def __init__(
        self,
        model: str,
        api_key: str = "",
        base_url: str = "",
        timeout_seconds: float = 60,
        temperature: float = 0.7,
    ):
        super().__init__(base_url, timeout_seconds)
        self.model = model
        self.api_key = api_key or ""
        self.temperature = temperature

    def check_available(self) -> bool:
        if self.requires_credential and not self.api_key:
            return False
        return super().check_available()

    async def _generate(self, prompt: str, system: Optional[str], json_mode: bool) -> ProviderResult:
        raise NotImplementedError

    async def invoke(self, prompt: str, system: Optional[str] = None, json_mode: bool = False) -> ProviderResult:
        """
        Sendet eine zusammengesetzte Anweisung und liefert den getrimmten Text.

        Returns:
            Ok(str) mit nicht-leerem Text, sonst Err
        """
        if self.requires_credential and not self.api_key:
            return self._missing_credential("text_provider.api_key")

        result = await self._generate(prompt, system, json_mode)
        if not result.ok:
            log_event(self.name, "ProviderError", str(result.error))
            return result

        text = (result.value or "").strip()
        if not text:
            log_event(self.name, "EmptyResponse", {"model": self.model})
            return Err(ProviderMalformedResponseError(self.name, "Provider lieferte leeren Text"))
        return Ok(text)

    async def invoke_json(self, prompt: str, system: Optional[str] = None) -> ProviderResult:
        """Wie invoke(), erwartet aber ein JSON-Objekt als Antwort."""
        result = await self.invoke(prompt, system, json_mode=True)
        if not result.ok:
            return result
        parsed = parse_json_text(self.name, result.value)
        if not parsed.ok:
            log_event(self.name, "MalformedJSON", result.value[:500])
        return parsed


class GeminiTextProvider(BaseTextProvider):
    """Google Gemini ueber die generateContent REST-API."""

    name = "gemini"

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

    async def _generate(self, prompt: str, system: Optional[str], json_mode: bool) -> ProviderResult:
        generation_config: Dict[str, Any] = {"temperature": self.temperature}
        if json_mode:
            generation_config["responseMimeType"] = "application/json"
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        result = await self._request_json("POST", f"{self.base_url}/models/{self.model}:generateContent", payload)
        if not result.ok:
            return result
        return Ok(self._extract_text(result.value))

    @staticmethod
    def _extract_text(data: Any) -> str:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        return "".join(part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str))


class OpenRouterTextProvider(BaseTextProvider):
    """OpenAI-kompatible Chat-Completions API von OpenRouter."""

    name = "openrouter"

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

    async def _generate(self, prompt: str, system: Optional[str], json_mode: bool) -> ProviderResult:
        payload: Dict[str, Any] = {
            "model": self.model.replace("openrouter/", ""),
            "messages": _chat_messages(prompt, system),
            "temperature": self.temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        result = await self._request_json("POST", f"{self.base_url}/chat/completions", payload)
        if not result.ok:
            return result
        return Ok(_message_content(result.value, "choices"))


class OllamaTextProvider(BaseTextProvider):
    """Lokales Ollama (/api/chat, ohne Streaming); braucht keinen API-Key."""

    name = "ollama"
    requires_credential = False

    async def _generate(self, prompt: str, system: Optional[str], json_mode: bool) -> ProviderResult:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": _chat_messages(prompt, system),
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        if json_mode:
            payload["format"] = "json"
        result = await self._request_json("POST", f"{self.base_url}/api/chat", payload)
        if not result.ok:
            return result
        return Ok(_message_content(result.value))


def _chat_messages(prompt: str, system: Optional[str]) -> List[Dict[str, str]]:
    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


def _message_content(data: Any, list_key: Optional[str] = None) -> str:
    """
    Liest message.content aus einer Chat-Antwort (Ollama) bzw. aus
    choices[0].message.content (OpenAI-Format). Unerwartete Formen ergeben "".
    """
    if list_key is not None:
        entries = data.get(list_key) if isinstance(data, dict) else None
        data = entries[0] if isinstance(entries, list) and entries else None
    message = data.get("message") if isinstance(data, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


TEXT_BACKENDS = {
    "gemini": GeminiTextProvider,
    "openrouter": OpenRouterTextProvider,
    "ollama": OllamaTextProvider,
}


def create_text_provider(settings: TextProviderConfig) -> BaseTextProvider:
    """Erzeugt den konfigurierten Text-Provider."""
    provider_cls = TEXT_BACKENDS[settings.backend]
    logger.debug("Text-Provider: %s (%s)", settings.backend, settings.model)
    return provider_cls(
        model=settings.model,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
        temperature=settings.temperature,
    )
