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

"""Configuration loading and management for graphdrive.

This module loads an optional YAML configuration file, deep-merges it over
built-in defaults, expands ``${ENV}`` references and validates the result.

Public API:

- load_config: Load, merge and validate the effective configuration
- validate_config: Report configuration problems without raising
- require_access_token: Fetch the token or raise ConfigError
- resolve_time_zone: Turn delta.time_zone into a tzinfo

Example:
    Basic usage:

        from pathlib import Path
        from graphdrive.config import load_config

        config = load_config(Path("graphdrive.yaml"))
        print(config["graph"]["base_url"])

"""

from .loader import (
    DEFAULT_CONFIG,
    load_config,
    require_access_token,
    resolve_time_zone,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "load_config",
    "validate_config",
    "require_access_token",
    "resolve_time_zone",
]
