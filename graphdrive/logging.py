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

"""Console output for graphdrive.

The engines and the drive client report what they are doing through a small
logger object instead of print() or the standard logging module. Library
callers get silence by default; the CLI swaps in a printing logger sized by
--verbose/--debug before it runs a command.

What goes where:
- step: numbered progress of a core workflow ("[2/3] Uploading 400000 bytes...")
- verbose: one line per round trip or decision, tagged with a component
  prefix: UPLOAD (chunk ranges, server offset corrections), DELTA (pages and
  item counts), CLIENT (endpoint calls), CONFIG (which file was loaded)
- debug: raw transport detail under HTTP, plus decoded chunk responses
- warning: recoverable oddities, e.g. no item id to attach a sharing link to

Access tokens and Authorization headers are never passed to the logger.

Example:
    Watch an upload from a script:
        ```python
        from graphdrive.io import upload_bytes
        from graphdrive.logging import get_logger, set_global_logger

        set_global_logger(get_logger(verbose=True))
        upload_bytes(session.upload_url, payload, token)
        # [UPLOAD] Uploading 700000 bytes in chunks of 327680 (starting at 0)
        # [UPLOAD] PUT bytes 0-327679/700000
        # ...
        ```
"""

from __future__ import annotations

from typing import Protocol


class Logger(Protocol):
    """What graphdrive modules expect from a logger."""

    def step(self, step: int, total: int, message: str) -> None:
        """Report workflow progress.

        Args:
            step: Current step number (1-based).
            total: Number of steps in the workflow.
            message: What the step is doing.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Report a round trip or decision ("UPLOAD", "DELTA", "CLIENT", "CONFIG")."""
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Report transport-level detail ("HTTP", "UPLOAD")."""
        ...

    def warning(self, prefix: str, message: str) -> None:
        """Report something the operation recovered from."""
        ...


class DefaultLogger:
    """Prints to stdout in the CLI's ``[PREFIX] message`` format.

    Steps and warnings are always printed. Verbose lines need verbose=True
    (or debug=True); debug lines need debug=True.
    """

    def __init__(self, verbose: bool = False, debug: bool = False) -> None:
        self._verbose = verbose or debug
        self._debug = debug

    def step(self, step: int, total: int, message: str) -> None:
        print(f"[{step}/{total}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            print(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            print(f"[{prefix}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        print(f"[{prefix}] WARNING: {message}")


class SilentLogger:
    """Discards everything. Installed until someone calls set_global_logger()."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass

    def warning(self, prefix: str, message: str) -> None:
        pass


_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Build the printing logger used by the CLI's -v/-d flags."""
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Return the logger the engines and client write to (silent by default)."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Install the logger for every graphdrive module.

    graphdrive.cli calls this once per command, before loading config, so
    the CONFIG lines are already visible. Tests reset it to SilentLogger.

    Args:
        logger: Any object implementing the Logger protocol.
    """
    global _global_logger
    _global_logger = logger
