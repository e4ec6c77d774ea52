"""Vela configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (VELA_EMBEDDING_MODEL, VELA_DB)
  3. Per-project vela.yaml
  4. Global ~/.vela/config.yaml  (model defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vela.ingest.embeddings import EmbeddingConfig

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".vela"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "vela.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_tokens or batch_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token, auth_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # my_secret, client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["embedding", "database", "limits"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (vela.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    batch_size: int = 128

    def to_embedding_config(self) -> EmbeddingConfig:
        return EmbeddingConfig(
            model=self.model, dimensions=self.dimensions, batch_size=self.batch_size
        )


@dataclass
class DatabaseCfg:
    """SQLite location and lock timeout (vela.yaml: database:)."""

    path: str = ".vela.db"
    timeout: float = 5.0


@dataclass
class LimitsCfg:
    """Input size limits for Q&A sources (vela.yaml: limits:)."""

    max_questions: int = 50
    max_question_chars: int = 1_000
    max_answer_chars: int = 20_000


@dataclass
class VelaConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    limits: LimitsCfg = field(default_factory=LimitsCfg)


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


def _positive(value: Any, name: str, cast: type = int) -> Any:
    try:
        result = cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if result <= 0:
        raise ConfigError(f"{name} must be > 0, got {value!r}")
    return result


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


def _cfg_from_dict(data: dict[str, Any]) -> VelaConfig:
    """Build a *VelaConfig* from a merged raw YAML dict."""
    cfg = VelaConfig()

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=_positive(e.get("dimensions", cfg.embedding.dimensions), "embedding.dimensions"),
            batch_size=_positive(e.get("batch_size", cfg.embedding.batch_size), "embedding.batch_size"),
        )

    if "database" in data:
        d = data["database"] or {}
        cfg.database = DatabaseCfg(
            path=str(d.get("path", cfg.database.path)),
            timeout=_positive(d.get("timeout", cfg.database.timeout), "database.timeout", float),
        )

    if "limits" in data:
        lim = data["limits"] or {}
        cfg.limits = LimitsCfg(
            max_questions=_positive(
                lim.get("max_questions", cfg.limits.max_questions), "limits.max_questions"
            ),
            max_question_chars=_positive(
                lim.get("max_question_chars", cfg.limits.max_question_chars),
                "limits.max_question_chars",
            ),
            max_answer_chars=_positive(
                lim.get("max_answer_chars", cfg.limits.max_answer_chars), "limits.max_answer_chars"
            ),
        )

    return cfg


def _apply_env_overrides(cfg: VelaConfig) -> VelaConfig:
    """Apply VELA_* environment variable overrides."""
    if model := os.environ.get("VELA_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("VELA_DB"):
        cfg.database.path = db_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> VelaConfig:
    """Load and return a merged *VelaConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *vela.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *VelaConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or a
            numeric setting is not a positive number.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    return _apply_env_overrides(cfg)


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.vela/config.yaml`` with defaults if it does not exist.

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
            "# Vela global configuration — model defaults only.\n"
            "# NEVER store API keys here; use environment variables:\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "embedding:\n"
            "  model: openai/text-embedding-3-small\n"
            "  dimensions: 1536\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
