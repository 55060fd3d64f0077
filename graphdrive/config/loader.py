# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Configuration loading and merging for graphdrive.

This module implements a two-layer configuration system: built-in defaults
overridden by an optional YAML file. Environment variables can be referenced
from string values, which keeps access tokens out of the file itself.

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULT_CONFIG)
   - API base URL, timeouts, chunk size, delta page cap
   - Always present

2. **User configuration** (graphdrive.yaml, or the path given with --config)
   - Optional; only loaded if a path is given or the default file exists
   - Overrides built-in defaults

Merge Behavior
--------------
The loader performs deep merging with "last wins" semantics:
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

Environment Expansion
---------------------
String values of the exact form ``${NAME}`` are replaced with the value of
the environment variable NAME (None if unset). A ``.env`` file in the working
directory is loaded first with python-dotenv, without overriding variables
already set.

Example file
------------
    graph:
      base_url: https://graph.microsoft.com/v1.0
      timeout: 60
    auth:
      access_token: ${GRAPHDRIVE_ACCESS_TOKEN}
    upload:
      chunk_size: 655360
      create_sharing_link: true
    delta:
      max_pages: 500
      time_zone: America/Los_Angeles

Error Handling
--------------
- ConfigError: Missing file, YAML parse errors, non-mapping content, or
  validation failures (all problems are reported together)
- All errors are chained with "from err" for better debugging

Examples
--------
    >>> from pathlib import Path
    >>> from graphdrive.config import load_config
    >>> cfg = load_config(Path("graphdrive.yaml"))
    >>> cfg["upload"]["chunk_size"]
    655360
"""

from __future__ import annotations

import copy
from datetime import tzinfo
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import find_dotenv, load_dotenv
import yaml

from graphdrive.exceptions import ConfigError
from graphdrive.io.upload import UPLOAD_ALIGNMENT

DEFAULT_CONFIG_PATH = Path("graphdrive.yaml")
TOKEN_ENV_VAR = "GRAPHDRIVE_ACCESS_TOKEN"

DEFAULT_CONFIG: dict[str, Any] = {
    "graph": {
        "base_url": "https://graph.microsoft.com/v1.0",
        "timeout": 60,
    },
    "auth": {
        "access_token": "${" + TOKEN_ENV_VAR + "}",
    },
    "upload": {
        "chunk_size": UPLOAD_ALIGNMENT,
        "conflict_behavior": "rename",
        "create_sharing_link": False,
        "sharing_link_type": "view",
        "sharing_link_scope": "anonymous",
    },
    "delta": {
        "max_pages": 1000,
        "max_items": None,
        "time_zone": None,
    },
}

CONFLICT_BEHAVIORS = ("rename", "replace", "fail")

# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load a YAML file and return the parsed mapping.

    Raises:
      ConfigError - missing file, invalid YAML, empty file or non-mapping root
    """
    if not p.exists():
        raise ConfigError(f"config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    if not isinstance(data, dict):
        raise ConfigError(f"YAML root must be a mapping: {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def _expand_env(value: Any) -> Any:
    """Recursively replace ``${NAME}`` strings with environment values."""
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1]) or None
    return value


# -------------------------------
# Validation
# -------------------------------


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: dict[str, Any]) -> list[str]:
    """Validate a merged configuration without making network calls.

    Args:
        config: Merged configuration dict.

    Returns:
        List of error messages (empty if valid).
    """
    errors: list[str] = []

    for section in ("graph", "auth", "upload", "delta"):
        if not isinstance(config.get(section), dict):
            errors.append(f"{section} must be a mapping")
    if errors:
        return errors

    graph = config["graph"]
    base_url = graph.get("base_url")
    if not isinstance(base_url, str) or not base_url.strip():
        errors.append("graph.base_url must be a non-empty string")
    elif not base_url.startswith(("https://", "http://")):
        errors.append("graph.base_url must be an http(s) URL")

    timeout = graph.get("timeout")
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
        errors.append("graph.timeout must be a positive number")

    upload = config["upload"]
    chunk_size = upload.get("chunk_size")
    if not _is_positive_int(chunk_size):
        errors.append("upload.chunk_size must be a positive integer")
    elif chunk_size % UPLOAD_ALIGNMENT:
        errors.append(
            f"upload.chunk_size must be a multiple of {UPLOAD_ALIGNMENT} bytes"
        )

    if upload.get("conflict_behavior") not in CONFLICT_BEHAVIORS:
        errors.append(
            "upload.conflict_behavior must be one of: " + ", ".join(CONFLICT_BEHAVIORS)
        )

    if not isinstance(upload.get("create_sharing_link"), bool):
        errors.append("upload.create_sharing_link must be a boolean")

    delta = config["delta"]
    if not _is_positive_int(delta.get("max_pages")):
        errors.append("delta.max_pages must be a positive integer")

    max_items = delta.get("max_items")
    if max_items is not None and not _is_positive_int(max_items):
        errors.append("delta.max_items must be a positive integer or null")

    time_zone = delta.get("time_zone")
    if time_zone is not None:
        if not isinstance(time_zone, str):
            errors.append("delta.time_zone must be a string or null")
        else:
            try:
                ZoneInfo(time_zone)
            except (ZoneInfoNotFoundError, ValueError):
                errors.append(f"delta.time_zone {time_zone!r} is not a known time zone")

    return errors


# -------------------------------
# Public API
# -------------------------------


def load_config(
    config_path: Path | None = None,
    *,
    access_token: str | None = None,
    load_env_file: bool = True,
) -> dict[str, Any]:
    """Load the effective configuration.

    Args:
        config_path: YAML file to overlay on the defaults. When None, the
            default ``graphdrive.yaml`` is used if it exists.
        access_token: Explicit token that overrides config and environment.
        load_env_file: If True, load ``.env`` with python-dotenv first.

    Returns:
        The merged, env-expanded and validated configuration dict.

    Raises:
        ConfigError: If the file can't be read or validation fails.
    """
    from graphdrive.logging import get_global_logger

    logger = get_global_logger()

    if load_env_file:
        load_dotenv(find_dotenv(usecwd=True))

    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH

    if config_path is not None:
        logger.verbose("CONFIG", f"Loading: {config_path}")
        config = _deep_merge_dicts(config, _load_yaml_file(Path(config_path)))
    else:
        logger.verbose("CONFIG", "No config file, using built-in defaults")

    config = _expand_env(config)

    if access_token and isinstance(config.get("auth"), dict):
        config["auth"]["access_token"] = access_token

    errors = validate_config(config)
    if errors:
        raise ConfigError("Invalid configuration:\n  - " + "\n  - ".join(errors))

    return config


def require_access_token(config: dict[str, Any]) -> str:
    """Return the configured access token.

    Raises:
        ConfigError: If no token is configured.
    """
    token = config.get("auth", {}).get("access_token")
    if not token:
        raise ConfigError(
            f"No access token configured. Set {TOKEN_ENV_VAR}, "
            "auth.access_token in the config file, or pass --token."
        )
    return token


def resolve_time_zone(config: dict[str, Any]) -> tzinfo | None:
    """Return the configured delta time zone, or None for the system zone."""
    name = config.get("delta", {}).get("time_zone")
    return ZoneInfo(name) if name else None
