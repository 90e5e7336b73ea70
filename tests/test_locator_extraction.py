# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Tests fuer providers/locator_extraction.py.
              Jede Ausgabeform (Scalar, Sequence, Wrapper, Empty) wird einzeln geprueft.
"""

import os
import sys

import pytest

# Projekt-Root zum Python-Path hinzufuegen
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from providers.locator_extraction import OutputShape, classify_output, extract_locators, first_locator


class FileOutput:
    """Nachbau eines SDK-Objekts mit url()-Methode."""

    def __init__(self, url):
        self._url = url

    def url(self):
        return self._url


class TestClassifyOutput:
    """Tests fuer classify_output()."""

    @pytest.mark.parametrize("raw,shape", [
        ("https://x/a.png", OutputShape.SCALAR),
        (["https://x/a.png"], OutputShape.SEQUENCE),
        ({"url": "https://x/a.png"}, OutputShape.WRAPPER),
        ({"output": ["https://x/a.png"]}, OutputShape.WRAPPER),
        (None, OutputShape.EMPTY),
        ("   ", OutputShape.EMPTY),
        ([], OutputShape.EMPTY),
        ({"status": "succeeded"}, OutputShape.EMPTY),
    ])
    def test_formen(self, raw, shape):
        assert classify_output(raw) == shape


class TestExtractLocators:
    """Tests fuer extract_locators()."""

    def test_scalar(self):
        assert extract_locators(" https://x/a.png ") == ["https://x/a.png"]

    def test_liste_von_strings(self):
        assert extract_locators(["https://x/1.png", "", "https://x/2.png"]) == [
            "https://x/1.png", "https://x/2.png",
        ]

    def test_liste_von_objekten(self):
        raw = [{"url": "https://x/1.png"}, FileOutput("https://x/2.png"), {"name": "ohne url"}]
        assert extract_locators(raw) == ["https://x/1.png", "https://x/2.png"]

    def test_duplikate_in_reihenfolge_entfernt(self):
        raw = ["https://x/1.png", {"url": "https://x/2.png"}, " https://x/1.png", FileOutput("https://x/2.png")]
        assert extract_locators(raw) == ["https://x/1.png", "https://x/2.png"]

    def test_verschachtelter_wrapper(self):
        raw = {"output": {"output": ["https://x/deep.png"]}}
        assert extract_locators(raw) == ["https://x/deep.png"]

    def test_objekt_mit_url_methode(self):
        assert extract_locators(FileOutput("https://x/obj.png")) == ["https://x/obj.png"]

    def test_leer(self):
        assert extract_locators(None) == []
        assert extract_locators({"status": "ok"}) == []


class TestFirstLocator:
    """Tests fuer first_locator()."""

    def test_erster_eintrag(self):
        assert first_locator(["https://x/1.png", "https://x/2.png"]) == "https://x/1.png"

    def test_leer_ist_leerer_string(self):
        """"" bedeutet: Generierung fuer dieses Element fehlgeschlagen."""
        assert first_locator([]) == ""
        assert first_locator(None) == ""
