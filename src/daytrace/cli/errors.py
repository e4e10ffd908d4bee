"""Daytrace rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from daytrace.cli.errors import err_config
    console.print(err_config(exc))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_config(exc: Exception) -> str:
    """Config file could not be loaded or contains an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {exc}\n"
        "  Fix daytrace.yaml (or ~/.daytrace/config.yaml) and try again."
    )


def err_no_db(db_path: str) -> str:
    """No database at the configured location."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  daytrace capture   (or set storage.data_dir / DAYTRACE_DATA_DIR)"
    )


def err_generation(message: str, model: str) -> str:
    """Answer generation failed (timeout, missing key, unknown model, no endpoint)."""
    return (
        f"[red]Error:[/] Could not generate an answer with '{model}'.\n"
        f"  {message}\n"
        "  Change the model with:  export DAYTRACE_GENERATION_MODEL=<provider/model>"
    )


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_database(exc: Exception, db_path: str) -> str:
    """The snapshot database could not be read."""
    return (
        f"[red]Error:[/] Could not read the database at '{db_path}'.\n"
        f"  {exc}\n"
        "  Check that the file is readable and not locked by another process."
    )


def err_bad_date(value: str) -> str:
    return (
        f"[red]Error:[/] Not a valid date: '{value}'.\n"
        "  Use ISO format, e.g.  2024-05-17  or  2024-05-17T18:30"
    )


def err_no_displays() -> str:
    return (
        "[red]Error:[/] No displays available for capture.\n"
        "  Check that a graphical session is running and screen recording is permitted."
    )


def err_capture_deps(exc: Exception) -> str:
    """The OCR stack failed to load."""
    return (
        f"[red]Error:[/] Text detection is unavailable: {exc}\n"
        "  Install the OCR extra:  pip install 'python-doctr[torch]'"
    )


def warn_embedding_unavailable(model: str) -> str:
    return (
        f"[yellow]Warning:[/] Embedding model '{model}' is unavailable; "
        "answers will use statistics only."
    )
