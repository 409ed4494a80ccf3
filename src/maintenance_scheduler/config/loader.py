"""
maintenance-scheduler: runtime config loader.

File: src/maintenance_scheduler/config/loader.py

Purpose
- Build the effective scheduler config from built-in defaults, ``scheduler.toml``,
  ``MAINT_*`` environment variables and caller overrides, in that order.

Functional requirements
- Environment names mirror config paths: ``utilization.target_percent`` is
  ``MAINT_UTILIZATION_TARGET_PERCENT``; values are coerced to the default's type.
- ``MAINT_PROFILE`` selects a profile when no ``profile`` argument is given.
- ``observability.log_dir`` is resolved relative to the config file.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Final

from maintenance_scheduler.config.schema import (
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "scheduler.toml"
ENV_PREFIX: Final[str] = "MAINT_"
PROFILE_ENV: Final[str] = f"{ENV_PREFIX}PROFILE"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})

# Sections that are not overridable from the environment.
_ENV_EXCLUDED_SECTIONS: Final[frozenset[str]] = frozenset({"meta", "profiles"})


class ConfigLoadError(ValueError):
    """Raised when config cannot be read or an override cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    ``cli_overrides`` keys are dotted config paths (``"windows.major.max_days"``).
    A missing file is an error only when ``config_path`` is given explicitly.
    """

    path = (
        Path(config_path).expanduser().resolve()
        if config_path is not None
        else (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    )
    env = os.environ if environ is None else environ

    config = assert_valid_config(
        merge_config(default_config(), _read_toml(path, required=config_path is not None))
    )

    selected = (profile if profile is not None else env.get(PROFILE_ENV, "")).strip() or None
    if selected is not None:
        config = apply_profile_overlay(config, selected)

    config = merge_config(config, _env_overrides(env))
    config = merge_config(config, _dotted_overrides(cli_overrides or {}))
    config = assert_valid_config(config, active_profile=selected)

    observability = config["observability"]
    observability["log_dir"] = _resolve_log_dir(observability["log_dir"], path.parent)
    return config


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load config from a specific TOML file, ignoring the process environment."""

    return load_config(path, environ={})


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return a deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for path, default in _leaves(default_config()):
        if path[0] in _ENV_EXCLUDED_SECTIONS:
            continue
        name = ENV_PREFIX + "_".join(part.upper() for part in path)
        raw = env.get(name)
        if raw is None:
            continue
        _set_path(overrides, path, _coerce(raw.strip(), default, name))
    return overrides


def _leaves(
    payload: Mapping[str, object], prefix: tuple[str, ...] = ()
) -> list[tuple[tuple[str, ...], object]]:
    found: list[tuple[tuple[str, ...], object]] = []
    for key in sorted(payload):
        value = payload[key]
        if isinstance(value, Mapping):
            found.extend(_leaves(value, (*prefix, key)))
        else:
            found.append(((*prefix, key), value))
    return found


def _coerce(raw: str, default: object, name: str) -> object:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise ConfigLoadError(f"{name} must be a boolean (true/false/1/0/yes/no/on/off)")
    parsers: dict[type, tuple[Callable[[str], object], str]] = {
        int: (int, "an integer"),
        float: (float, "a number"),
    }
    parser = parsers.get(type(default))
    if parser is None:
        return raw
    convert, label = parser
    try:
        return convert(raw)
    except ValueError as exc:
        raise ConfigLoadError(f"{name} must be {label}") from exc


def _dotted_overrides(overrides: Mapping[str, object]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key in sorted(overrides):
        path = tuple(part for part in key.split(".") if part)
        if not path:
            raise ConfigLoadError(f"invalid override key {key!r}")
        _set_path(payload, path, overrides[key])
    return payload


def _set_path(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[path[-1]] = value


def _resolve_log_dir(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "PROFILE_ENV",
    "dump_effective_config",
    "load_config",
    "load_config_file",
]
