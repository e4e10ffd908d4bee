"""Tests for daytrace rich error messages."""

from __future__ import annotations

import pytest

from daytrace.cli.errors import (
    err_bad_date,
    err_capture_deps,
    err_config,
    err_database,
    err_generation,
    err_no_api_key,
    err_no_db,
    err_no_displays,
    warn_embedding_unavailable,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _has_what_and_action(msg: str) -> bool:
    """Every error must contain a cause AND an actionable instruction."""
    lower = msg.lower()
    return "error:" in lower and any(
        kw in lower for kw in ["run:", "set:", "use ", "install", "export ", "fix ", "check "]
    )


# ---------------------------------------------------------------------------
# err_no_api_key
# ---------------------------------------------------------------------------


def test_err_no_api_key_contains_env_var() -> None:
    assert "OPENAI_API_KEY" in err_no_api_key("openai")


def test_err_no_api_key_unknown_provider_fallback() -> None:
    assert "MYPROVIDER_API_KEY" in err_no_api_key("myprovider")


# ---------------------------------------------------------------------------
# Every error is actionable
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "msg",
    [
        err_no_api_key("anthropic"),
        err_config(ValueError("retention.days must be >= 1")),
        err_no_db("/tmp/daytrace.db"),
        err_database(OSError("disk I/O error"), "/tmp/daytrace.db"),
        err_generation("Generation timed out after 60s.", "ollama/llama3"),
        err_bad_date("yesterday-ish"),
        err_no_displays(),
        err_capture_deps(ImportError("No module named 'doctr'")),
    ],
)
def test_errors_have_action(msg: str) -> None:
    assert _has_what_and_action(msg)


def test_err_no_db_names_path_and_capture() -> None:
    msg = err_no_db("/data/daytrace.db")
    assert "/data/daytrace.db" in msg
    assert "daytrace capture" in msg


def test_err_generation_includes_model_and_reason() -> None:
    msg = err_generation("Model 'x' was not found.", "ollama/x")
    assert "ollama/x" in msg
    assert "was not found" in msg
    assert "DAYTRACE_GENERATION_MODEL" in msg


def test_err_bad_date_shows_value() -> None:
    assert "'17/05/2024'" in err_bad_date("17/05/2024")


def test_warn_embedding_unavailable() -> None:
    msg = warn_embedding_unavailable("ollama/nomic-embed-text")
    assert "Warning" in msg
    assert "statistics only" in msg
