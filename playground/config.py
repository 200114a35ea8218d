"""
playground/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

EXECUTION_MODE_ISOLATED = "isolated"
EXECUTION_MODE_IN_PROCESS = "in_process"
ALLOWED_EXECUTION_MODES = {EXECUTION_MODE_ISOLATED, EXECUTION_MODE_IN_PROCESS}

DELIVERY_CALLER = "caller"
DELIVERY_BROADCAST = "broadcast"
ALLOWED_DELIVERY_POLICIES = {DELIVERY_CALLER, DELIVERY_BROADCAST}


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """
    Read a comma-separated list from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass(frozen=True)
class CompilerSettings:
    """
    Runtime settings for compiling and executing submissions.
    """

    execution_mode: str = EXECUTION_MODE_ISOLATED
    timeout_seconds: float = 10.0
    max_memory_mb: int = 256
    max_output_chars: int = 65536
    serialize_in_process: bool = True


@dataclass(frozen=True)
class GatewaySettings:
    """
    Connection-facing settings for the compiler hub.
    """

    outcome_delivery: str = DELIVERY_CALLER
    cors_allowed_origins: tuple[str, ...] = ("http://localhost:3000",)


@lru_cache(maxsize=1)
def get_compiler_settings() -> CompilerSettings:
    """
    Return cached compiler settings from environment variables.
    """

    return CompilerSettings(
        execution_mode=_get_str_env("COMPILER_EXECUTION_MODE", EXECUTION_MODE_ISOLATED).lower(),
        timeout_seconds=max(0.1, _get_float_env("COMPILER_TIMEOUT_SECONDS", 10.0)),
        max_memory_mb=max(64, _get_int_env("COMPILER_MAX_MEMORY_MB", 256)),
        max_output_chars=max(1, _get_int_env("COMPILER_MAX_OUTPUT_CHARS", 65536)),
        serialize_in_process=_get_bool_env("COMPILER_SERIALIZE_IN_PROCESS", True),
    )


@lru_cache(maxsize=1)
def get_gateway_settings() -> GatewaySettings:
    """
    Return cached gateway settings from environment variables.
    """

    return GatewaySettings(
        outcome_delivery=_get_str_env("OUTCOME_DELIVERY", DELIVERY_CALLER).lower(),
        cors_allowed_origins=_get_list_env("CORS_ALLOWED_ORIGINS", ("http://localhost:3000",)),
    )
