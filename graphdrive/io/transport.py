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
Single-request HTTP executor for graphdrive.

Every network round trip made by the upload engine, the delta engine and the
drive client goes through execute(). It issues exactly one request and hands
back the status code, raw body and headers, or raises TransportError when no
response was received. Status interpretation is left to the caller, because
the set of acceptable codes differs per operation (202 is progress for a
chunk PUT, 404 is ResourceNotFoundError for a folder lookup, and so on).

Key Features:

- **Shared sessions** - make_session() builds a requests.Session with connection
  pooling and a helpful User-Agent. Callers may pass one session through a whole
  upload or delta walk.
- **No hidden retries** - The session's urllib3 Retry is pinned to zero, so a
  429 or 5xx on any method (a delta page GET as much as a chunk PUT) comes
  back to the caller as-is. Retry policy belongs to whoever calls the engines.
- **JSON decoding** - HttpResponse.json() raises MalformedResponseError instead
  of leaking json.JSONDecodeError.

Example:
    >>> from graphdrive.io.transport import execute, make_session
    >>> with make_session() as session:
    ...     resp = execute(
    ...         "GET",
    ...         "https://graph.microsoft.com/v1.0/me/drive/special/approot",
    ...         {"Authorization": "Bearer eyJ0..."},
    ...         session=session,
    ...     )
    >>> resp.status_code
    200

Notes:
- Timeouts are per-request, not per-operation
- Authorization headers are never logged
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from graphdrive import __version__
from graphdrive.exceptions import MalformedResponseError, TransportError
from graphdrive.logging import get_global_logger

DEFAULT_TIMEOUT = 60


@dataclass(frozen=True)
class HttpResponse:
    """Outcome of one HTTP round trip.

    Attributes:
        status_code: HTTP status code.
        body: Raw response body.
        headers: Response headers.
        url: Final request URL (after redirects).
    """

    status_code: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> dict[str, Any]:
        """Decode the body as a JSON object.

        Returns:
            The decoded JSON object.

        Raises:
            MalformedResponseError: If the body is not valid JSON or the top
                level value is not an object.
        """
        try:
            data = json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            preview = self.body[:200].decode("utf-8", errors="replace")
            raise MalformedResponseError(
                f"Invalid JSON response from {self.url or 'server'}: {preview!r}"
            ) from err
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a JSON object from {self.url or 'server'}, "
                f"got {type(data).__name__}"
            )
        return data


def make_session() -> requests.Session:
    """
    Create a requests.Session that reports every response exactly once.

    - Never retries: not on connection errors, not on 429/5xx, not on
      Retry-After. Each status reaches the engines, which treat it as terminal.
    - Sets a helpful User-Agent.
    """
    s = requests.Session()
    retries = Retry(
        total=0,
        status_forcelist=(),
        respect_retry_after_header=False,
        raise_on_status=False,
    )
    s.headers.update({"User-Agent": f"graphdrive/{__version__}"})
    s.mount("http://", HTTPAdapter(max_retries=retries))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def bearer_headers(
    access_token: str, extra: dict[str, str] | None = None
) -> dict[str, str]:
    """Build request headers carrying a bearer token.

    Args:
        access_token: OAuth2 access token.
        extra: Additional headers merged on top.

    Returns:
        Header dict with Authorization set.
    """
    headers = {"Authorization": f"Bearer {access_token}"}
    if extra:
        headers.update(extra)
    return headers


def execute(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: bytes | dict[str, Any] | None = None,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    params: dict[str, str] | None = None,
) -> HttpResponse:
    """Issue a single HTTP request and return its raw outcome.

    Args:
        method: HTTP method ("GET", "PUT", "POST", ...).
        url: Absolute request URL, used verbatim.
        headers: Request headers.
        body: Raw bytes are sent as-is; a dict is sent as a JSON body.
        session: Session to use. A throwaway session from make_session() is
            created and closed when omitted.
        timeout: Per-request timeout in seconds.
        params: Optional query parameters appended to the URL.

    Returns:
        The HTTP response, whatever its status code.

    Raises:
        TransportError: If no HTTP response was received (chained with
            'from err').
    """
    logger = get_global_logger()

    kwargs: dict[str, Any] = {"headers": headers or {}, "timeout": timeout}
    if params:
        kwargs["params"] = params
    if isinstance(body, dict):
        kwargs["json"] = body
    elif body is not None:
        kwargs["data"] = body

    logger.debug("HTTP", f"{method} {url}")

    own_session = session is None
    if own_session:
        session = make_session()
    try:
        resp = session.request(method, url, **kwargs)
    except requests.exceptions.RequestException as err:
        raise TransportError(f"{method} {url} failed: {err}") from err
    finally:
        if own_session:
            session.close()

    logger.debug("HTTP", f"Response: {resp.status_code} {resp.reason}")

    return HttpResponse(
        status_code=resp.status_code,
        body=resp.content,
        headers=dict(resp.headers),
        url=resp.url,
    )
