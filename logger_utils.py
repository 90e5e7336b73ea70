# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Logger Utilities - JSON-basiertes Event-Logging fuer die Generierungs-Pipeline.
              Jeder Provider-Aufruf, jeder Fallback und jeder Polling-Schritt
              wird als eine Zeile in studio_log.jsonl protokolliert.
"""

import json
import logging
import os
import unicodedata
from datetime import datetime
from logging.handlers import RotatingFileHandler

LOGFILE = os.getenv("STUDIO_LOG_FILE", "studio_log.jsonl")

# Rotierender File-Handler verhindert unbegrenztes Wachstum der Logdatei
_logger = logging.getLogger("studio_events")
_logger.setLevel(logging.INFO)
_logger.propagate = False

# Handler nur einmal registrieren (verhindert doppelte Handler bei Re-Import)
if not _logger.handlers:
    _handler = RotatingFileHandler(
        LOGFILE,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
        delay=True
    )
    _handler.setLevel(logging.INFO)
    # Nur die Nachricht ausgeben (JSONL-Format)
    _handler.setFormatter(logging.Formatter("%(message)s"))
    _logger.addHandler(_handler)


def _sanitize_string(s: str) -> str:
    """Normalisiert Unicode (NFC) fuer robustes Encoding."""
    if not s:
        return s
    try:
        s = unicodedata.normalize("NFC", s)
    except (TypeError, ValueError):
        pass
    return s


def log_event(component: str, action: str, content) -> None:
    """Schreibt einen Logeintrag mit Zeitstempel in studio_log.jsonl."""
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False, default=str)

    component = _sanitize_string(component)
    action = _sanitize_string(action)
    content = _sanitize_string(content)

    entry = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "component": component,
        "action": action,
        "content": content.strip()[:5000],  # Inhalt begrenzen
    }
    try:
        _logger.info(json.dumps(entry, ensure_ascii=False))
    except UnicodeEncodeError:
        # Fallback: ASCII-sicheres Encoding
        _logger.info(json.dumps(entry, ensure_ascii=True))
