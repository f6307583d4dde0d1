"""CLI interface."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from modelmind.knowledge.guidelines import available_guidelines, read_guidelines
from modelmind.services.response_formatter import format_response
from modelmind.utils.config import settings

app = typer.Typer(add_completion=False)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level.")):
    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level.upper())


@app.command()
def chat(
    message: str = typer.Argument(..., help="Natural-language request."),
    diagram_file: Optional[Path] = typer.Option(None, "--diagram-file", "-d", help="PlantUML file to modify or analyze."),
    raw: bool = typer.Option(False, "--raw", help="Print the full router response instead of the chat reply."),
):
    """Run a single request through the pipeline and print the result as JSON."""
    from modelmind.server import get_router

    current_diagram = None
    if diagram_file is not None:
        if not diagram_file.exists():
            raise typer.BadParameter(f"File not found: {diagram_file}")
        current_diagram = diagram_file.read_text(encoding="utf-8")

    routed = asyncio.run(get_router().process_request(message, current_diagram=current_diagram))
    payload = routed if raw else format_response(routed)
    typer.echo(json.dumps(payload.model_dump(by_alias=True, mode="json", exclude_none=True), indent=2))
    if not routed.success:
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Start the HTTP API."""
    import uvicorn

    uvicorn.run("modelmind.server:app", host=host, port=port, reload=reload)


@app.command()
def guidelines(diagram_type: Optional[str] = typer.Argument(None, help="Diagram type, e.g. sequence or use-case.")):
    """List the bundled PlantUML guidelines, or print one of them."""
    if diagram_type is None:
        for name in available_guidelines():
            typer.echo(name)
        return
    typer.echo(read_guidelines(diagram_type))


if __name__ == "__main__":
    app()
