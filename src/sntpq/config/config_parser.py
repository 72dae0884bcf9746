"""Configuration parsing helpers for sntpq.

Brief:
  Reads the optional YAML configuration file, layers command line overrides
  on top of it, and validates the result into an SntpqConfig.

Inputs:
  - A config path (or the SNTPQ_CONFIG environment variable) and a mapping of
    dotted override keys such as 'query.timeout'.

Outputs:
  - SntpqConfig instances, or ConfigError.
"""

from __future__ import annotations

import copy
import os
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from .config_schema import SntpqConfig

CONFIG_ENV_VAR = "SNTPQ_CONFIG"


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration."""


def load_config_file(path: str) -> Dict[str, Any]:
    """Brief: Read a YAML configuration file into a mapping.

    Inputs:
      - path: Filesystem path; '~' is expanded.

    Outputs:
      - dict: Parsed mapping; an empty file yields {}.

    Raises:
      - ConfigError when the file cannot be read or parsed, or when its top
        level is not a mapping.
    """

    full = os.path.expanduser(path)
    try:
        with open(full, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a mapping at top level")
    return data


def apply_overrides(
    cfg: Mapping[str, Any], overrides: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    """Brief: Merge dotted-key overrides into a copy of cfg.

    Inputs:
      - cfg: Base mapping (not mutated).
      - overrides: Mapping like {'query.timeout': 2.0, 'follow': True}.
        Keys whose value is None are skipped so unset CLI flags do not mask
        file values.

    Outputs:
      - dict: New merged mapping.

    Example:
      >>> apply_overrides({'query': {'port': 123}}, {'query.timeout': 1})
      {'query': {'port': 123, 'timeout': 1}}
    """

    merged: Dict[str, Any] = copy.deepcopy(dict(cfg))
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        parts = key.split(".")
        node = merged
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
    return merged


def build_config(
    raw: Mapping[str, Any], overrides: Optional[Mapping[str, Any]] = None
) -> SntpqConfig:
    """Validate raw config plus overrides into an SntpqConfig."""

    merged = apply_overrides(raw, overrides)
    try:
        return SntpqConfig(**merged)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SntpqConfig:
    """Brief: Load configuration from file (if any) and apply overrides.

    Inputs:
      - path: Explicit config path; when None, the SNTPQ_CONFIG environment
        variable is consulted, and when that is unset defaults are used.
      - overrides: Dotted-key overrides (see apply_overrides).
      - environ: Environment mapping (defaults to os.environ).

    Outputs:
      - SntpqConfig.
    """

    env = os.environ if environ is None else environ
    if path is None:
        path = env.get(CONFIG_ENV_VAR) or None

    raw: Dict[str, Any] = load_config_file(path) if path else {}
    return build_config(raw, overrides)
