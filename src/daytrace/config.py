"""Daytrace configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (DAYTRACE_GENERATION_MODEL, DAYTRACE_EMBEDDING_MODEL,
     DAYTRACE_DATA_DIR)
  3. Per-directory daytrace.yaml
  4. Global ~/.daytrace/config.yaml  (no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".daytrace"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "daytrace.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_tokens or top_k.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token"
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret"
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "capture",
        "privacy",
        "embedding",
        "generation",
        "retrieval",
        "stats",
        "retention",
        "storage",
    ]
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class CaptureCfg:
    """Frame sampling and change detection (daytrace.yaml: capture:).

    Attributes:
        similarity_threshold: Fingerprint distance at or below which a frame is
            discarded as unchanged.
        major_change_threshold: Distance above which text extraction is forced
            (likely context switch).
        extraction_interval: Seconds between scheduled text extractions.
        min_frame_interval: Per-display throttle; frames arriving sooner are
            dropped before fingerprinting.
        poll_interval: Seconds the capture loop sleeps between grabs.
        primary_monitor_only: Capture only the primary display.
        workers: Worker threads for the redact/extract/embed chain.
        image_format: Pillow format used for stored frames.
        image_quality: Lossy quality for stored frames.
    """

    similarity_threshold: float = 0.1
    major_change_threshold: float = 0.5
    extraction_interval: float = 10.0
    min_frame_interval: float = 1.0
    poll_interval: float = 1.0
    primary_monitor_only: bool = False
    workers: int = 2
    image_format: str = "webp"
    image_quality: int = 70


@dataclass
class PrivacyCfg:
    """Redaction settings (daytrace.yaml: privacy:)."""

    blocked_apps: list[str] = field(default_factory=list)
    redaction_margin: int = 4


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (daytrace.yaml: embedding:)."""

    model: str = "ollama/nomic-embed-text"
    timeout: float = 10.0


@dataclass
class GenerationCfg:
    """LLM generation configuration (daytrace.yaml: generation:)."""

    model: str = "ollama/llama3"
    timeout: float = 60.0
    max_tokens: int = 1024


@dataclass
class RetrievalCfg:
    """Semantic retrieval configuration (daytrace.yaml: retrieval:).

    Attributes:
        top_k: Number of semantic matches passed to the prompt.
        window: Number of most recent embedding records scanned per search.
    """

    top_k: int = 10
    window: int = 1000


@dataclass
class StatsCfg:
    """Usage aggregation (daytrace.yaml: stats:).

    Attributes:
        max_gap: Cap in seconds on the gap credited between two snapshots.
        tail_seconds: Duration credited to the final snapshot of a range.
        category_cache: Optional JSON file holding per-app category overrides.
    """

    max_gap: float = 60.0
    tail_seconds: float = 5.0
    category_cache: str | None = None


@dataclass
class RetentionCfg:
    """Image retention (daytrace.yaml: retention:)."""

    days: int = 30


@dataclass
class StorageCfg:
    """Where the database and stored frames live (daytrace.yaml: storage:)."""

    data_dir: str = str(_GLOBAL_CONFIG_DIR)

    @property
    def root(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def db_path(self) -> Path:
        return self.root / "daytrace.db"

    @property
    def image_dir(self) -> Path:
        return self.root / "snapshots"


@dataclass
class DaytraceConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    capture: CaptureCfg = field(default_factory=CaptureCfg)
    privacy: PrivacyCfg = field(default_factory=PrivacyCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    stats: StatsCfg = field(default_factory=StatsCfg)
    retention: RetentionCfg = field(default_factory=RetentionCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: DaytraceConfig) -> None:
    """Raise ConfigError for values the pipeline cannot run with."""
    c = cfg.capture
    if not 0.0 <= c.similarity_threshold <= 1.0:
        raise ConfigError(
            f"capture.similarity_threshold must be in [0, 1], got {c.similarity_threshold}"
        )
    if c.major_change_threshold < c.similarity_threshold:
        raise ConfigError(
            "capture.major_change_threshold must be >= capture.similarity_threshold "
            f"({c.major_change_threshold} < {c.similarity_threshold})"
        )
    if c.workers < 1:
        raise ConfigError(f"capture.workers must be >= 1, got {c.workers}")
    if cfg.retrieval.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {cfg.retrieval.top_k}")
    if cfg.retrieval.window < 1:
        raise ConfigError(f"retrieval.window must be >= 1, got {cfg.retrieval.window}")
    if cfg.retention.days < 1:
        raise ConfigError(f"retention.days must be >= 1, got {cfg.retention.days}")


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> DaytraceConfig:
    """Build a *DaytraceConfig* from a merged raw YAML dict."""
    cfg = DaytraceConfig()

    if "capture" in data:
        c = data["capture"]
        d = cfg.capture
        cfg.capture = CaptureCfg(
            similarity_threshold=float(c.get("similarity_threshold", d.similarity_threshold)),
            major_change_threshold=float(
                c.get("major_change_threshold", d.major_change_threshold)
            ),
            extraction_interval=float(c.get("extraction_interval", d.extraction_interval)),
            min_frame_interval=float(c.get("min_frame_interval", d.min_frame_interval)),
            poll_interval=float(c.get("poll_interval", d.poll_interval)),
            primary_monitor_only=bool(c.get("primary_monitor_only", d.primary_monitor_only)),
            workers=int(c.get("workers", d.workers)),
            image_format=str(c.get("image_format", d.image_format)),
            image_quality=int(c.get("image_quality", d.image_quality)),
        )

    if "privacy" in data:
        p = data["privacy"]
        cfg.privacy = PrivacyCfg(
            blocked_apps=[str(a) for a in p.get("blocked_apps") or []],
            redaction_margin=int(p.get("redaction_margin", cfg.privacy.redaction_margin)),
        )

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
        )

    if "generation" in data:
        g = data["generation"]
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            timeout=float(g.get("timeout", cfg.generation.timeout)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(
            top_k=int(r.get("top_k", cfg.retrieval.top_k)),
            window=int(r.get("window", cfg.retrieval.window)),
        )

    if "stats" in data:
        s = data["stats"]
        cfg.stats = StatsCfg(
            max_gap=float(s.get("max_gap", cfg.stats.max_gap)),
            tail_seconds=float(s.get("tail_seconds", cfg.stats.tail_seconds)),
            category_cache=s.get("category_cache") or cfg.stats.category_cache,
        )

    if "retention" in data:
        cfg.retention = RetentionCfg(
            days=int(data["retention"].get("days", cfg.retention.days)),
        )

    if "storage" in data:
        cfg.storage = StorageCfg(
            data_dir=str(data["storage"].get("data_dir", cfg.storage.data_dir)),
        )

    return cfg


def _apply_env_overrides(cfg: DaytraceConfig) -> DaytraceConfig:
    """Apply DAYTRACE_* environment variable overrides."""
    if model := os.environ.get("DAYTRACE_GENERATION_MODEL"):
        cfg.generation.model = model
    if model := os.environ.get("DAYTRACE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if data_dir := os.environ.get("DAYTRACE_DATA_DIR"):
        cfg.storage.data_dir = data_dir
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> DaytraceConfig:
    """Load and return a merged *DaytraceConfig*.

    Applies layers in order: global → per-directory → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *daytrace.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *DaytraceConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a value
            is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-directory config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.daytrace/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Daytrace global configuration — no API keys here.\n"
            "# Cloud providers read their keys from the environment:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: ollama/nomic-embed-text\n"
            "\n"
            "generation:\n"
            "  model: ollama/llama3\n"
            "\n"
            "retention:\n"
            "  days: 30\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
