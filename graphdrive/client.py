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

"""Drive REST client for graphdrive.

DriveClient bundles an access token, an API base URL and one requests session,
and exposes the drive operations the CLI and core workflows need:

- get_app_folder_id: Look up the application's special folder
- create_text_file / upload_small_file: Single-request content upload
- create_upload_session: Start a resumable upload
- upload_bytes: Run the chunked upload engine against a session
- get_upload_status: Ask a session which offset it expects next
- create_folder: Create a child folder
- create_sharing_link: Create a sharing link for an item
- sync_delta: Run the delta sync engine

The token is supplied once and never refreshed by the client; an expired
token surfaces as UnexpectedStatusError(401).

Example:
    from graphdrive.client import DriveClient

    client = DriveClient(access_token=token)
    folder_id = client.get_app_folder_id()
    session = client.create_upload_session("photo.jpg")
    result = client.upload_bytes(session.upload_url, payload)
    link = client.create_sharing_link(result.remote_id)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import tzinfo
from typing import Any
from urllib.parse import quote

import requests

from graphdrive.delta import DEFAULT_MAX_PAGES, sync_delta
from graphdrive.exceptions import (
    MalformedResponseError,
    ResourceNotFoundError,
    UnexpectedStatusError,
)
from graphdrive.io.transport import (
    DEFAULT_TIMEOUT,
    HttpResponse,
    bearer_headers,
    execute,
    make_session,
)
from graphdrive.io.upload import DEFAULT_CHUNK_SIZE, get_upload_status, upload_bytes
from graphdrive.logging import get_global_logger
from graphdrive.results import DeltaResult, UploadResult, UploadSession

DEFAULT_BASE_URL = "https://graph.microsoft.com/v1.0"
APP_ROOT_PATH = "me/drive/special/approot"

CONFLICT_BEHAVIOR_KEY = "@microsoft.graph.conflictBehavior"


def _require_str(payload: dict[str, Any], key: str, context: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise MalformedResponseError(f"{context} response has no '{key}'")
    return value


class DriveClient:
    """Client for drive REST operations with a fixed bearer token.

    Attributes:
        access_token: Bearer token used on every request.
        base_url: API root without trailing slash.
        timeout: Per-request timeout in seconds.
        session: requests session shared by every call of this client.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            access_token: Bearer token (acquisition is the caller's job).
            base_url: API root, e.g. ``https://graph.microsoft.com/v1.0``.
            timeout: Per-request timeout in seconds.
            session: Optional requests session; one is created when omitted.
        """
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or make_session()

    def close(self) -> None:
        """Close the underlying requests session."""
        self.session.close()

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _app_item_path(self, name: str, action: str) -> str:
        return f"{APP_ROOT_PATH}:/{quote(name)}:/{action}"

    def _request(
        self,
        method: str,
        path: str,
        body: bytes | dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        url = self._url(path)
        get_global_logger().verbose("CLIENT", f"{method} {url}")
        return execute(
            method,
            url,
            bearer_headers(self.access_token, headers),
            body,
            session=self.session,
            timeout=self.timeout,
        )

    # ------------------------------------------------------------------ #
    # Folder lookup and creation
    # ------------------------------------------------------------------ #

    def get_app_folder_id(self) -> str:
        """Return the id of the application's special folder.

        Returns:
            The app folder's drive item id.

        Raises:
            ResourceNotFoundError: On HTTP 404.
            UnexpectedStatusError: On any other non-200 status.
            MalformedResponseError: If the body has no ``id``.
            TransportError: If the request gets no response.
        """
        resp = self._request("GET", APP_ROOT_PATH, headers={"Accept": "application/json"})
        if resp.status_code == 404:
            raise ResourceNotFoundError(resp.url)
        if resp.status_code != 200:
            raise UnexpectedStatusError(resp.status_code, resp.url)
        return _require_str(resp.json(), "id", "App folder")

    def create_folder(
        self, name: str, parent_id: str, conflict_behavior: str = "rename"
    ) -> str:
        """Create a folder under parent_id and return its id.

        Raises:
            UnexpectedStatusError: If the status is not 200/201.
            MalformedResponseError: If the body has no ``id``.
            TransportError: If the request gets no response.
        """
        body = {
            "name": name,
            "folder": {},
            CONFLICT_BEHAVIOR_KEY: conflict_behavior,
        }
        resp = self._request("POST", f"me/drive/items/{parent_id}/children", body)
        if resp.status_code not in (200, 201):
            raise UnexpectedStatusError(resp.status_code, resp.url)
        return _require_str(resp.json(), "id", "Create folder")

    # ------------------------------------------------------------------ #
    # Uploads
    # ------------------------------------------------------------------ #

    def upload_small_file(
        self, name: str, data: bytes, content_type: str = "application/octet-stream"
    ) -> str:
        """Upload a small payload into the app folder with one PUT.

        Returns:
            The uploaded item's web URL.

        Raises:
            UnexpectedStatusError: If the status is not 200/201.
            MalformedResponseError: If the body has no ``webUrl``.
            TransportError: If the request gets no response.
        """
        resp = self._request(
            "PUT",
            self._app_item_path(name, "content"),
            data,
            headers={"Content-Type": content_type},
        )
        if resp.status_code not in (200, 201):
            raise UnexpectedStatusError(resp.status_code, resp.url)
        return _require_str(resp.json(), "webUrl", "Upload")

    def create_text_file(self, name: str, text: str) -> str:
        """Upload text as a UTF-8 file in the app folder and return its web URL."""
        return self.upload_small_file(name, text.encode("utf-8"), "text/plain")

    def create_upload_session(
        self, name: str, conflict_behavior: str = "rename"
    ) -> UploadSession:
        """Create a resumable upload session for name in the app folder.

        Raises:
            UnexpectedStatusError: If the status is not 200/201.
            MalformedResponseError: If any session field is missing.
            TransportError: If the request gets no response.
        """
        body = {"item": {CONFLICT_BEHAVIOR_KEY: conflict_behavior, "name": name}}
        resp = self._request(
            "POST", self._app_item_path(name, "createUploadSession"), body
        )
        if resp.status_code not in (200, 201):
            raise UnexpectedStatusError(resp.status_code, resp.url)

        payload = resp.json()
        ranges = payload.get("nextExpectedRanges")
        if not isinstance(ranges, list):
            raise MalformedResponseError(
                "Upload session response has no 'nextExpectedRanges'"
            )
        return UploadSession(
            upload_url=_require_str(payload, "uploadUrl", "Upload session"),
            expiration_date_time=_require_str(
                payload, "expirationDateTime", "Upload session"
            ),
            next_expected_ranges=[str(r) for r in ranges],
        )

    def get_upload_status(self, upload_url: str) -> int:
        """Return the next byte offset an upload session expects."""
        return get_upload_status(
            upload_url, self.access_token, session=self.session, timeout=self.timeout
        )

    def upload_bytes(
        self,
        upload_url: str,
        data: bytes,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        resume: bool = False,
        should_stop: Callable[[], bool] | None = None,
    ) -> UploadResult:
        """Upload data to an existing upload session.

        Args:
            upload_url: Session URL from create_upload_session().
            data: Complete payload.
            chunk_size: Bytes per chunk (multiple of 320 KiB).
            resume: If True, ask the session for its next expected offset
                first and start there instead of at 0.
            should_stop: Cancellation callback checked before each chunk.

        Returns:
            UploadResult for the finished item.
        """
        start_offset = self.get_upload_status(upload_url) if resume else 0
        return upload_bytes(
            upload_url,
            data,
            self.access_token,
            chunk_size=chunk_size,
            start_offset=start_offset,
            session=self.session,
            timeout=self.timeout,
            should_stop=should_stop,
        )

    # ------------------------------------------------------------------ #
    # Sharing
    # ------------------------------------------------------------------ #

    def create_sharing_link(
        self, item_id: str, link_type: str = "view", scope: str = "anonymous"
    ) -> str:
        """Create a sharing link for an item and return its URL.

        Raises:
            UnexpectedStatusError: If the status is not 200/201.
            MalformedResponseError: If the body has no ``link.webUrl``.
            TransportError: If the request gets no response.
        """
        body = {"type": link_type, "scope": scope}
        resp = self._request("POST", f"me/drive/items/{item_id}/createLink", body)
        if resp.status_code not in (200, 201):
            raise UnexpectedStatusError(resp.status_code, resp.url)

        link = resp.json().get("link")
        if not isinstance(link, dict):
            raise MalformedResponseError("Create link response has no 'link'")
        return _require_str(link, "webUrl", "Create link")

    # ------------------------------------------------------------------ #
    # Delta sync
    # ------------------------------------------------------------------ #

    def sync_delta(
        self,
        sync_token: str | None = None,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        max_items: int | None = None,
        tz: tzinfo | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> DeltaResult:
        """Fetch every change since sync_token (see graphdrive.delta.sync_delta)."""
        return sync_delta(
            self.base_url,
            self.access_token,
            sync_token,
            session=self.session,
            timeout=self.timeout,
            max_pages=max_pages,
            max_items=max_items,
            tz=tz,
            should_stop=should_stop,
        )
