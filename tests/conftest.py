# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Pytest Fixtures - Gemeinsame Test-Konfiguration und Fake-Provider
              fuer die Prototype Studio Tests. Kein Test spricht mit echten Providern.
"""

import os
import sys
import tempfile

import pytest

# Eventlog der Tests nicht im Projektverzeichnis ablegen
os.environ.setdefault("STUDIO_LOG_FILE", os.path.join(tempfile.gettempdir(), "studio_test_log.jsonl"))

# Fuege Projekt-Root zum Python-Path hinzu
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exceptions import ProviderUnavailableError
from providers.base_provider import Err, Ok


class FakeTextProvider:
    """Text-Provider mit vorgegebener Antwort-Queue; leere Queue = Provider down."""

    name = "fake-text"

    def __init__(self, responses=None, available=True):
        self.responses = list(responses or [])
        self.available = available
        self.calls = []

    def check_available(self):
        return self.available

    def _next(self):
        if not self.responses:
            return Err(ProviderUnavailableError(self.name, "nicht erreichbar"))
        return self.responses.pop(0)

    async def invoke(self, prompt, system=None, json_mode=False):
        self.calls.append({"prompt": prompt, "system": system, "json_mode": json_mode})
        return self._next()

    async def invoke_json(self, prompt, system=None):
        self.calls.append({"prompt": prompt, "system": system, "json_mode": True})
        return self._next()


class FakeImageProvider:
    """Bild-Provider; liefert URLs aus einer Liste oder Ok("https://img.test/<n>.png")."""

    name = "fake-image"

    def __init__(self, results=None, available=True):
        self.results = list(results or [])
        self.available = available
        self.calls = []

    def check_available(self):
        return self.available

    async def generate(self, prompt, mode="sketch", reference_image=None):
        self.calls.append({"prompt": prompt, "mode": mode, "reference_image": reference_image})
        if self.results:
            return self.results.pop(0)
        return Ok(f"https://img.test/{len(self.calls)}.png")


class FakeMeshProvider:
    """Meshy-Ersatz: start() liefert eine Task-ID, poll() arbeitet eine Status-Queue ab."""

    name = "fake-meshy"

    def __init__(self, start_result=None, poll_results=None, available=True):
        self.start_result = start_result or Ok("task-123")
        self.poll_results = list(poll_results or [])
        self.available = available
        self.start_calls = []
        self.poll_calls = []

    def check_available(self):
        return self.available

    async def start(self, payload):
        self.start_calls.append(payload)
        return self.start_result

    async def poll(self, task_id):
        self.poll_calls.append(task_id)
        if len(self.poll_results) > 1:
            return self.poll_results.pop(0)
        return self.poll_results[0]


class FakeTrellisProvider:
    """Trellis-Ersatz mit vorgegebener Prediction fuer run_image() und poll()."""

    name = "fake-trellis"

    def __init__(self, run_result=None, poll_results=None, available=True):
        self.run_result = run_result or Ok({"id": "pred-1", "status": "processing"})
        self.poll_results = list(poll_results or [])
        self.available = available
        self.run_calls = []
        self.poll_calls = []

    def check_available(self):
        return self.available

    async def run_image(self, image_url, options):
        self.run_calls.append({"image_url": image_url, "options": options})
        return self.run_result

    async def poll(self, prediction_id):
        self.poll_calls.append(prediction_id)
        if len(self.poll_results) > 1:
            return self.poll_results.pop(0)
        return self.poll_results[0]


class FakeResponse:
    """aiohttp-Antwort mit festem Status und Body (bytes)."""

    def __init__(self, status, body):
        self.status = status
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class FakeSession:
    """Ersetzt aiohttp.ClientSession; liefert immer dieselbe FakeResponse."""

    def __init__(self, response):
        self.response = response
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.response

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


SESSION_PATCH = "providers.base_provider.aiohttp.ClientSession"


class FakeClock:
    """Ersetzt asyncio.sleep; merkt sich die angeforderten Wartezeiten."""

    def __init__(self):
        self.sleeps = []

    async def __call__(self, seconds):
        self.sleeps.append(seconds)


@pytest.fixture
def text_down():
    """Text-Provider, der jeden Aufruf mit Err beantwortet."""
    return FakeTextProvider()


@pytest.fixture
def fake_clock():
    return FakeClock()
