from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional

from .executor import DEFAULT_COMMAND


ENV_PREFIX = "FEATURERUN_"

DEFAULT_ENV = "dev"
DEFAULT_FEATURES_DIR = "src/test/java"

_VAR_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# target API per environment; FEATURERUN_BASE_URL overrides
BASE_URLS: Dict[str, str] = {
    "dev": "http://localhost:3000/api",
    "qa": "http://qa.goodmenlogistics.com/api",
    "staging": "http://staging.goodmenlogistics.com/api",
    "prod": "https://safetyapp-ln58.onrender.com/api",
}


@dataclass
class ConfigError(Exception):
    key: str
    message: str

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


@dataclass(frozen=True)
class RunConfig:
    env: str = DEFAULT_ENV
    base_url: str = BASE_URLS[DEFAULT_ENV]
    features_dir: str = DEFAULT_FEATURES_DIR
    command: str = DEFAULT_COMMAND
    timeout: Optional[float] = None
    extra_env: Dict[str, str] = field(default_factory=dict)

    def child_env(self) -> Dict[str, str]:
        """Variables exported to every scenario command."""
        env = {
            f"{ENV_PREFIX}ENV": self.env,
            f"{ENV_PREFIX}BASE_URL": self.base_url,
        }
        env.update(self.extra_env)
        return env


def _parse_timeout(raw: Optional[str | float], key: str) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(key, f"expected a number of seconds, got {raw!r}")
    if value <= 0:
        raise ConfigError(key, f"must be > 0, got {raw!r}")
    return value


def parse_vars(pairs: Iterable[str]) -> Dict[str, str]:
    """Parse KEY=VALUE strings (from --var) into extra scenario variables."""
    out: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not _VAR_NAME.match(key):
            raise ConfigError("--var", f"expected KEY=VALUE with a shell variable name, got {pair!r}")
        out[key] = value
    return out


def resolve_base_url(env: str, override: Optional[str] = None) -> str:
    if override:
        return override.rstrip("/")
    try:
        return BASE_URLS[env]
    except KeyError:
        raise ConfigError(
            f"{ENV_PREFIX}ENV",
            f"unknown environment {env!r} (known: {', '.join(sorted(BASE_URLS))}); "
            f"set {ENV_PREFIX}BASE_URL to use a custom one",
        ) from None


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    **overrides,
) -> RunConfig:
    """
    Build RunConfig from FEATURERUN_* variables, then apply explicit
    overrides (CLI options). Overrides that are None are ignored.
    `extra_env` adds variables to child_env(); they win over the built-in ones.
    """
    environ = os.environ if environ is None else environ
    values = {k: v for k, v in overrides.items() if v is not None}

    env = values.get("env") or environ.get(f"{ENV_PREFIX}ENV") or DEFAULT_ENV
    base_url = resolve_base_url(env, values.get("base_url") or environ.get(f"{ENV_PREFIX}BASE_URL"))

    timeout_key = f"{ENV_PREFIX}TIMEOUT"
    timeout = _parse_timeout(values.get("timeout", environ.get(timeout_key)), timeout_key)

    command = values.get("command") or environ.get(f"{ENV_PREFIX}COMMAND") or DEFAULT_COMMAND
    if not command.strip():
        raise ConfigError(f"{ENV_PREFIX}COMMAND", "command must not be empty")

    return RunConfig(
        env=env,
        base_url=base_url,
        features_dir=values.get("features_dir") or environ.get(f"{ENV_PREFIX}FEATURES_DIR") or DEFAULT_FEATURES_DIR,
        command=command,
        timeout=timeout,
        extra_env=dict(values.get("extra_env") or {}),
    )
