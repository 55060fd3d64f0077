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

"""Exception hierarchy for graphdrive.

This module defines a custom exception hierarchy that allows library users
to distinguish between the ways a drive operation can fail:

- ConfigError: Configuration-related errors (YAML parse, missing token, bad chunk size)
- TransportError: The request never produced an HTTP response
- UnexpectedStatusError: The server answered with a status outside the expected set
- ResourceNotFoundError: HTTP 404 on a lookup-style call
- MalformedResponseError: Success status, but the body is not the expected JSON
- PaginationLimitError: A delta feed ran past the configured page/item cap
- OperationCancelledError: The caller asked to stop between round trips

All exceptions inherit from GraphDriveError, allowing users to catch every
graphdrive error with a single except clause if needed. Every error is
terminal for the operation that raised it; retry policy belongs to the caller.

Example:
    Catching specific error types:
        ```python
        from graphdrive.delta import sync_delta
        from graphdrive.exceptions import TransportError, UnexpectedStatusError

        try:
            result = sync_delta(base_url, token, sync_token=saved_token)
        except TransportError:
            ...  # back off and retry later
        except UnexpectedStatusError as e:
            if e.status_code == 401:
                ...  # acquire a fresh token
        ```
"""

from __future__ import annotations

__all__ = [
    "GraphDriveError",
    "ConfigError",
    "NetworkError",
    "TransportError",
    "UnexpectedStatusError",
    "ResourceNotFoundError",
    "MalformedResponseError",
    "PaginationLimitError",
    "OperationCancelledError",
]


class GraphDriveError(Exception):
    """Base exception for all graphdrive errors.

    All graphdrive-specific exceptions inherit from this class, allowing users
    to catch all graphdrive errors with a single except clause if needed.
    """

    pass


class ConfigError(GraphDriveError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, invalid structure)
    - Missing or invalid configuration fields
    - A missing access token
    - A chunk size that violates the upload alignment rule
    """

    pass


class NetworkError(GraphDriveError):
    """Base class for failures of a single request/response round trip."""

    pass


class TransportError(NetworkError):
    """Raised when a request fails before any HTTP response is received.

    Covers connection failures, DNS errors, TLS errors and timeouts. The
    underlying requests exception is chained as ``__cause__``.
    """

    pass


class UnexpectedStatusError(NetworkError):
    """Raised when the server responds with an unexpected HTTP status.

    Attributes:
        status_code: The HTTP status code returned by the server.
        url: The request URL, when known.

    Example:
        Re-authenticate on expiry:
            ```python
            try:
                client.get_app_folder_id()
            except UnexpectedStatusError as e:
                if e.status_code == 401:
                    token = acquire_new_token()
            ```
    """

    def __init__(self, status_code: int, url: str | None = None, detail: str = ""):
        self.status_code = status_code
        self.url = url
        message = f"unexpected HTTP status {status_code}"
        if url:
            message += f" for {url}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ResourceNotFoundError(UnexpectedStatusError):
    """Raised when a lookup-style call receives HTTP 404."""

    def __init__(self, url: str | None = None, detail: str = ""):
        super().__init__(404, url, detail or "resource not found")


class MalformedResponseError(NetworkError):
    """Raised when a success response body is not the expected JSON shape."""

    pass


class PaginationLimitError(MalformedResponseError):
    """Raised when a paginated feed exceeds the configured page or item cap."""

    pass


class OperationCancelledError(GraphDriveError):
    """Raised when a should_stop callback requests cancellation."""

    pass
