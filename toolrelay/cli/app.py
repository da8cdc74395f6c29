"""
Main CLI application for toolrelay.

Usage:
    toolrelay chat
    toolrelay ask QUERY
    toolrelay serve [--host HOST] [--port PORT]
    toolrelay index FILE --doc-id ID
    toolrelay tools list|info
    toolrelay config show|validate
    toolrelay version
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from toolrelay import __version__
from toolrelay.config import ToolRelayConfig, load_config
from toolrelay.errors import ConfigError, ToolRelayError

app = typer.Typer(name="toolrelay", help="toolrelay - chat model with external tools")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()

_state: dict = {"config_path": None}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    if _state["config_path"]:
        return Path(_state["config_path"])
    candidates = [
        Path.cwd() / "toolrelay.yaml",
        Path.cwd() / "toolrelay.yml",
        Path.home() / ".config" / "toolrelay" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _load() -> ToolRelayConfig:
    try:
        return load_config(_get_config_path())
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)


def _build_loop(cfg: ToolRelayConfig):
    from toolrelay.stack import build_loop

    try:
        return build_loop(cfg)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)


@app.callback()
def main_callback(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a YAML config file"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Root log level"),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(levelname)s: %(name)s - %(message)s",
    )
    _state["config_path"] = config


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat():
    """Start an interactive chat session."""
    from toolrelay.cli.chat import ChatHandler

    loop = _build_loop(_load())
    asyncio.run(ChatHandler(loop, console=console).run_loop())


@app.command()
def ask(query: str = typer.Argument(..., help="Question to answer")):
    """Answer a single query and exit."""
    loop = _build_loop(_load())
    try:
        answer = asyncio.run(loop.run(query))
    except ToolRelayError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(answer)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Bind port"),
):
    """Serve the HTTP API."""
    import uvicorn

    from toolrelay.server.app import create_app

    cfg = _load()
    api = create_app(_build_loop(cfg), cors_origins=cfg.server.cors_origins)
    uvicorn.run(api, host=host or cfg.server.host, port=port or cfg.server.port)


@app.command()
def index(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text file to index"),
    doc_id: str = typer.Option(..., "--doc-id", help="Document identifier"),
    hostname: Optional[str] = typer.Option(None, help="Tenant hostname (defaults to vector.hostname)"),
    with_context: bool = typer.Option(False, "--with-context", help="Prefix chunks with model-generated context"),
):
    """Chunk, embed and index a document into the vector store."""
    import httpx

    from toolrelay.stack import build_model_client, build_vector_search
    from toolrelay.vector.chunking import FixedLengthChunking
    from toolrelay.vector.context import SummarizedContextGenerator
    from toolrelay.vector.embeddings import EmbeddingError
    from toolrelay.vector.search import VectorSearchError

    cfg = _load()
    target = hostname or cfg.vector.hostname
    if not target:
        console.print("[red]No hostname given and vector.hostname is not set.[/red]")
        raise typer.Exit(1)

    try:
        search = build_vector_search(cfg)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)
    chunking = FixedLengthChunking(cfg.vector.chunk_size, cfg.vector.chunk_overlap)
    context = SummarizedContextGenerator(build_model_client(cfg)) if with_context else None

    try:
        count = asyncio.run(
            search.index_document(
                path.read_text(encoding="utf-8"),
                target,
                chunking,
                doc_id=doc_id,
                metadata={"source": path.name},
                context=context,
                batch_size=cfg.vector.batch_size,
            )
        )
    except (VectorSearchError, EmbeddingError, ToolRelayError, httpx.HTTPError) as e:
        console.print(f"[red]Indexing failed:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"Indexed {count} chunk(s) from {path.name}")


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from toolrelay.cli.output import OutputFormatter
    from toolrelay.stack import build_registry

    registry = build_registry(_load())
    OutputFormatter(console).format_tool_list(registry.list())


@tools_app.command("info")
def tools_info(tool_name: str = typer.Argument(..., help="Tool name")):
    """Show tool details and schema."""
    from toolrelay.cli.output import OutputFormatter
    from toolrelay.stack import build_registry

    registry = build_registry(_load())
    tool = registry.get(tool_name)
    if not tool:
        console.print(f"[red]Tool not found:[/red] {tool_name}")
        raise typer.Exit(1)

    OutputFormatter(console).format_tool_info(tool)


@config_app.command("show")
def config_show():
    """Show effective config."""
    from toolrelay.cli.output import OutputFormatter

    OutputFormatter(console).format_config(_load().to_dict())


@config_app.command("validate")
def config_validate():
    """Validate config and the tool wiring it describes."""
    from toolrelay.stack import build_registry

    config_path = _get_config_path()
    cfg = _load()
    try:
        registry = build_registry(cfg)
    except ConfigError as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  Model: {cfg.llm.name} ({cfg.llm.model})")
    console.print(f"  Max rounds: {cfg.loop.max_rounds}")
    console.print(f"  Tools: {', '.join(registry.names()) or 'none'}")


@app.command()
def version():
    """Show version."""
    console.print(f"toolrelay v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
