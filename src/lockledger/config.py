"""User configuration.

Settings come from four layers, later ones winning:

1. built-in defaults,
2. the YAML config file (``<config dir>/config.yaml`` or ``--config``),
3. environment variables (``LOCKLEDGER_HOME``, ``LOCKLEDGER_DB``),
4. command-line options (applied by the CLI through ``Settings.override``).

The config directory is ``$LOCKLEDGER_HOME`` if set, otherwise
``$XDG_CONFIG_HOME/lockledger`` or ``~/.config/lockledger``.

Example ``config.yaml``::

    database: ~/packaging/package_db.json
    output_dir: ~/packaging/out
    generator_command: "takopack package {name} {version} --output {output}"
    jobs: 4
    git_commit: true
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from lockledger.exceptions import ConfigError
from lockledger.registry.crates_io import CRATES_IO_API
from lockledger.registry.http_client import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
DATABASE_FILENAME = "package_db.json"

ENV_HOME = "LOCKLEDGER_HOME"
ENV_DATABASE = "LOCKLEDGER_DB"


def config_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the per-user lockledger directory (not created)."""
    env = os.environ if environ is None else environ
    home = env.get(ENV_HOME, "").strip()
    if home:
        return Path(home).expanduser()
    xdg = env.get("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / "lockledger"


def default_database_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return the ledger location used when none is configured."""
    return config_dir(environ) / DATABASE_FILENAME


# ---------------------------------------------------------------------------
# Value parsing
# ---------------------------------------------------------------------------


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def _parse_int(value: Any, key: str, *, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Invalid config type for {key}: expected int, got {type(value).__name__}")
    if value < minimum:
        raise ConfigError(f"Invalid config value for {key}: must be >= {minimum}")
    return value


def _parse_float(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Invalid config type for {key}: expected number, got {type(value).__name__}")
    if value <= 0:
        raise ConfigError(f"Invalid config value for {key}: must be > 0")
    return float(value)


def _parse_str(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid config value for {key}: expected a non-empty string")
    return value.strip()


def _parse_path(value: Any, key: str, base: Path) -> Path:
    path = Path(os.path.expandvars(_parse_str(value, key))).expanduser()
    return path if path.is_absolute() else base / path


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """Effective lockledger configuration.

    Attributes:
        database: Ledger file.
        output_dir: Base directory for artifacts. None means a fresh
            ``track_<timestamp>`` directory per run.
        generator_command: Command template for the artifact generator.
            None runs in plan-only mode.
        checkpoint_every: Successes between two ledger saves.
        max_attempts: Give up on a package after this many failures.
            None retries forever.
        jobs: Concurrent generator invocations.
        git_commit: Commit the ledger into git after each save.
        registry_url: crates.io API root.
        timeout: Registry request timeout in seconds.
        cargo: cargo executable used to resolve manifests.
    """

    database: Path
    output_dir: Path | None = None
    generator_command: str | None = None
    checkpoint_every: int = 1
    max_attempts: int | None = None
    jobs: int = 1
    git_commit: bool = False
    registry_url: str = CRATES_IO_API
    timeout: float = DEFAULT_TIMEOUT
    cargo: str = "cargo"

    def override(self, **changes: Any) -> Settings:
        """Return a copy with every non-None value in *changes* applied."""
        applied = {k: v for k, v in changes.items() if v is not None}
        unknown = set(applied) - {f.name for f in fields(self)}
        if unknown:
            raise ConfigError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        return replace(self, **applied)


_KEYS = frozenset(f.name for f in fields(Settings))


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ConfigError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def _settings_from_mapping(data: Mapping[str, Any], base: Path, defaults: Settings) -> Settings:
    unknown = sorted(str(k) for k in data if k not in _KEYS)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, raw in data.items():
        if raw is None:
            continue
        match key:
            case "database" | "output_dir":
                values[key] = _parse_path(raw, key, base)
            case "generator_command" | "registry_url" | "cargo":
                values[key] = _parse_str(raw, key)
            case "checkpoint_every" | "max_attempts" | "jobs":
                values[key] = _parse_int(raw, key)
            case "git_commit":
                values[key] = _parse_bool(raw, key)
            case "timeout":
                values[key] = _parse_float(raw, key)
    return replace(defaults, **values)


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from *path* (or the default config file) and the environment.

    A missing default config file is fine; a missing explicit one is not.
    Relative paths in the file are resolved against the file's directory.

    Raises:
        ConfigError: Unreadable file, invalid YAML, unknown keys, or values
            of the wrong type.
    """
    env = os.environ if environ is None else environ
    settings = Settings(database=default_database_path(env))

    config_path = path if path is not None else config_dir(env) / CONFIG_FILENAME
    if path is not None and not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    if config_path.is_file():
        logger.debug("Loading config from %s", config_path)
        data = _load_yaml_mapping(config_path)
        settings = _settings_from_mapping(data, config_path.parent, settings)

    env_db = env.get(ENV_DATABASE, "").strip()
    if env_db:
        settings = replace(settings, database=Path(env_db).expanduser())
    return settings
