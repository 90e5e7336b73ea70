# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Prototype Studio - Haupteinstiegspunkt.
              Zeigt die Provider-Verfuegbarkeit und startet den FastAPI-Server mit uvicorn.
"""

import os

from dotenv import load_dotenv

# Lade .env aus dem Projektverzeichnis (nicht CWD!)
_project_root = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(_project_root, ".env"), override=True)

import uvicorn
from rich.console import Console
from rich.panel import Panel

from exceptions import ConfigurationError
from logger_utils import log_event

# Rich-Console Setup
console = Console()


def build_banner(availability: dict, host: str, port: int) -> str:
    lines = [f"[bold]http://{host}:{port}[/bold]", ""]
    for name, available in availability.items():
        marker = "[green]✓[/green]" if available else "[yellow]–  nicht konfiguriert[/yellow]"
        lines.append(f"{name:<12} {marker}")
    return "\n".join(lines)


def main():
    console.print("[bold cyan]🧪 Prototype Studio - Idee → Fragebogen → Spezifikation → 2D → 3D[/bold cyan]")

    try:
        from backend.app_state import studio
    except ConfigurationError as e:
        console.print(f"[bold red]❌ Fehler beim Laden der config.yaml: {e}[/bold red]")
        raise SystemExit(1)

    server = studio.config.server
    availability = studio.availability()
    console.print(Panel.fit(build_banner(availability, server.host, server.port),
                            title="Provider", border_style="green"))
    if not all(availability.values()):
        console.print("[yellow]⚠️ Fehlende Credentials: betroffene Endpunkte antworten mit 503 "
                      "bzw. mit deterministischen Fallbacks.[/yellow]")

    log_event("System", "Start", {"host": server.host, "port": server.port, "providers": availability})
    uvicorn.run("backend.api:app", host=server.host, port=server.port)


if __name__ == "__main__":
    main()
