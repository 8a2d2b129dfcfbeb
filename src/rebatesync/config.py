from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .settings import Settings

# Flat variable names used by the deployments that predate the nested
# REBATESYNC_ overrides. Values are taken verbatim (never YAML-parsed) since
# keys and secrets can look like numbers.
LEGACY_ENV_PATHS: dict[str, list[str]] = {
    "BITGET_API_KEY": ["exchanges", "bitget", "credentials", "api_key"],
    "BITGET_SECRET_KEY": ["exchanges", "bitget", "credentials", "api_secret"],
    "BITGET_PASSPHRASE": ["exchanges", "bitget", "credentials", "passphrase"],
    "GATE_API_KEY": ["exchanges", "gate", "credentials", "api_key"],
    "GATE_SECRET_KEY": ["exchanges", "gate", "credentials", "api_secret"],
    "XT_API_KEY": ["exchanges", "xt", "credentials", "api_key"],
    "XT_SECRET_KEY": ["exchanges", "xt", "credentials", "api_secret"],
    "XT_API_URL": ["exchanges", "xt", "base_url"],
    "XT_INVITE_CODE": ["exchanges", "xt", "options", "invite_code"],
    "BACKEND_API_URL": ["backend", "base_url"],
    "ADMIN_API_KEY": ["backend", "admin_api_key"],
}


def _deep_set(obj: dict[str, Any], path: list[str], value: Any) -> None:
    cur: dict[str, Any] = obj
    for key in path[:-1]:
        nxt = cur.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[key] = nxt
        cur = nxt
    cur[path[-1]] = value


def _parse_env_value(raw: str) -> Any:
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _apply_legacy_env(data: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(data)

    for key, path in LEGACY_ENV_PATHS.items():
        value = environ.get(key)
        if value:
            _deep_set(merged, path, value)

    if environ.get("MODE", "").lower() == "test":
        _deep_set(merged, ["sync", "test_mode"], True)

    return merged


def _apply_env_overrides(
    data: dict[str, Any], environ: dict[str, str], *, prefix: str = "REBATESYNC_"
) -> dict[str, Any]:
    merged: dict[str, Any] = dict(data)

    for key, raw_value in environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        if remainder in {"CONFIG", "LOG_LEVEL"}:
            continue

        path = [p.lower() for p in remainder.split("__") if p]
        if not path:
            continue

        _deep_set(merged, path, _parse_env_value(raw_value))

    return merged


def _read_config_file(path: Path) -> dict[str, Any]:
    """Parse the YAML config; a missing or empty file means all defaults."""
    if not path.exists():
        return {}

    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config root must be a mapping, got: {type(loaded)!r}")
    return loaded


def load_settings(
    config_path: str | Path | None = None, environ: Mapping[str, str] | None = None
) -> Settings:
    """Load settings from YAML, then the flat legacy variables, then REBATESYNC_* overrides.

    Raises:
        ValueError: If the file is not valid YAML, its root is not a mapping, or validation fails
    """
    env = dict(os.environ if environ is None else environ)
    path = Path(config_path or env.get("REBATESYNC_CONFIG", "config.yml"))

    data = _read_config_file(path)
    data = _apply_legacy_env(data, env)
    data = _apply_env_overrides(data, env)

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
