# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Extraktion von Locatoren (URLs) aus polymorphen Provider-Ausgaben.
              Formen: SCALAR (String), SEQUENCE (Liste), WRAPPER (Objekt mit url
              oder verschachteltem "output"), EMPTY (nichts Verwertbares).
"""

from enum import Enum
from typing import Any, List, Optional


class OutputShape(Enum):
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    WRAPPER = "wrapper"
    EMPTY = "empty"


def _url_of(item: Any) -> Optional[str]:
    """Liest einen Locator aus Mapping["url"], Attribut url oder Methode url()."""
    if isinstance(item, dict):
        url = item.get("url")
    else:
        url = getattr(item, "url", None)
    if callable(url):
        url = url()
    if url is None:
        return None
    url = str(url).strip()
    return url or None


def _output_of(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("output")
    return getattr(item, "output", None)


def classify_output(raw: Any) -> OutputShape:
    """Ordnet eine rohe Provider-Ausgabe einer der vier Formen zu."""
    if raw is None:
        return OutputShape.EMPTY
    if isinstance(raw, str):
        return OutputShape.SCALAR if raw.strip() else OutputShape.EMPTY
    if isinstance(raw, (list, tuple)):
        return OutputShape.SEQUENCE if raw else OutputShape.EMPTY
    if _url_of(raw) or _output_of(raw) is not None:
        return OutputShape.WRAPPER
    return OutputShape.EMPTY


def extract_locators(raw: Any) -> List[str]:
    """
    Liefert alle Locatoren einer Provider-Ausgabe in ihrer Reihenfolge, ohne Duplikate.

    Wrapper mit "output" werden rekursiv entpackt. Eine leere Liste bedeutet
    "kein Ergebnis"; es wird nie eine Exception geworfen.
    """
    shape = classify_output(raw)

    if shape == OutputShape.SCALAR:
        return [raw.strip()]

    if shape == OutputShape.SEQUENCE:
        urls = []
        for item in raw:
            url = item.strip() if isinstance(item, str) else _url_of(item)
            if url and url not in urls:
                urls.append(url)
        return urls

    if shape == OutputShape.WRAPPER:
        url = _url_of(raw)
        if url:
            return [url]
        return extract_locators(_output_of(raw))

    return []


def first_locator(raw: Any) -> str:
    """Erster Locator oder "" (= Generierung fuer dieses Element fehlgeschlagen)."""
    urls = extract_locators(raw)
    return urls[0] if urls else ""
