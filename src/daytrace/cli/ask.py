"""daytrace ask — answer a question about past activity.

Usage:
  daytrace ask "what did I work on this morning?"
  daytrace ask "how much time did I spend in Slack?" --as-of 2024-05-17T18:00
  daytrace ask "what was I reading?" --as-of 2024-05-17
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from daytrace.app import build_orchestrator, open_stores
from daytrace.cli.common import load_cfg, parse_instant
from daytrace.cli.errors import err_database, err_generation, err_no_api_key, warn_embedding_unavailable
from daytrace.errors import GenerationError
from daytrace.rag import llm_client

console = Console()


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question about your activity.")],
    as_of: Annotated[
        str | None,
        typer.Option("--as-of", help="Answer relative to this ISO date/time (default: now)."),
    ] = None,
    config_dir: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Directory containing daytrace.yaml."),
    ] = None,
) -> None:
    """Answer QUESTION from your activity statistics and captured text."""
    cfg = load_cfg(config_dir)
    instant = parse_instant(as_of)

    try:
        llm_client.validate_api_key(cfg.generation.model)
    except EnvironmentError:
        console.print(err_no_api_key(llm_client.provider_of(cfg.generation.model)))
        raise typer.Exit(1)
    try:
        llm_client.validate_api_key(cfg.embedding.model)
    except EnvironmentError:
        console.print(warn_embedding_unavailable(cfg.embedding.model))

    stores = open_stores(cfg)
    orchestrator = build_orchestrator(cfg, stores)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=console,
        ) as prog:
            prog.add_task("Thinking…", total=None)
            answer = orchestrator.answer(question, as_of=instant)
    except GenerationError as exc:
        console.print(err_generation(str(exc), cfg.generation.model))
        raise typer.Exit(1)
    except sqlite3.Error as exc:
        console.print(err_database(exc, str(cfg.storage.db_path)))
        raise typer.Exit(1)

    console.print(answer, markup=False, highlight=False)
