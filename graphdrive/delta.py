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

"""Incremental change sync (delta feed) for graphdrive.

sync_delta() fetches every change since a continuation token, following the
server's ``@odata.nextLink`` pages until a page has none, and returns the
newest ``@delta.token`` together with the concatenated change records.

Workflow:
    1. First request: ``{base_url}/me/drive/root/delta``, with ``token=<sync_token>``
       when resuming, without it for a full initial sync
    2. Each page must carry ``@delta.token``; its ``value`` items become
       ChangeRecords, appended in page order
    3. If the page has ``@odata.nextLink``, request that URL verbatim
    4. Otherwise return the last page's delta token and every record

Tokens and next links are opaque: they are stored and replayed, never parsed
or rebuilt.

Safety Limits:
    The walk is an explicit loop bounded by max_pages (and optionally
    max_items), so a server that keeps handing out next links cannot run it
    forever. Exceeding a cap raises PaginationLimitError.

Error Handling:
    - TransportError: A page request got no response
    - UnexpectedStatusError: A page returned anything but 200
    - MalformedResponseError: Non-JSON body, missing ``@delta.token``, or an
      item without ``id``/``lastModifiedDateTime``
    - PaginationLimitError: Page or item cap exceeded
    - OperationCancelledError: should_stop() returned True between pages
    Pages fetched before an error are discarded.

Example:
    Initial sync, then incremental:

        from graphdrive.delta import sync_delta

        first = sync_delta("https://graph.microsoft.com/v1.0", token)
        store(first.sync_token)

        later = sync_delta(
            "https://graph.microsoft.com/v1.0", token, sync_token=load()
        )
        for change in later.changes:
            print(change.id, change.name, change.is_delete)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import tzinfo

import requests

from graphdrive.exceptions import (
    MalformedResponseError,
    OperationCancelledError,
    PaginationLimitError,
    UnexpectedStatusError,
)
from graphdrive.io.transport import DEFAULT_TIMEOUT, bearer_headers, execute
from graphdrive.logging import get_global_logger
from graphdrive.models import ChangeRecord
from graphdrive.results import DeltaResult

DELTA_PATH = "me/drive/root/delta"
DEFAULT_MAX_PAGES = 1000

# OData response keys
DELTA_TOKEN_KEY = "@delta.token"
NEXT_LINK_KEY = "@odata.nextLink"
VALUE_KEY = "value"


def delta_url(base_url: str) -> str:
    """Root change-feed URL for an API base URL."""
    return f"{base_url.rstrip('/')}/{DELTA_PATH}"


def sync_delta(
    base_url: str,
    access_token: str,
    sync_token: str | None = None,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_pages: int = DEFAULT_MAX_PAGES,
    max_items: int | None = None,
    tz: tzinfo | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> DeltaResult:
    """Fetch all changes since sync_token, following pagination.

    Args:
        base_url: API root, e.g. ``https://graph.microsoft.com/v1.0``.
        access_token: Bearer token sent on every page request.
        sync_token: Continuation token from a previous sync. None requests a
            full initial sync.
        session: Optional requests session reused for every page.
        timeout: Per-page timeout in seconds.
        max_pages: Maximum number of pages to request.
        max_items: Maximum number of change records to accumulate
            (None for no limit).
        tz: Time zone for ChangeRecord.last_modified (None for the system's
            local zone).
        should_stop: Called before each page; returning True cancels.

    Returns:
        DeltaResult with the new sync token and every change record.

    Raises:
        ValueError: If max_pages or max_items is not positive.
        TransportError: If a page request gets no response.
        UnexpectedStatusError: If a page response is not 200.
        MalformedResponseError: If a page body is not the expected shape.
        PaginationLimitError: If max_pages or max_items is exceeded.
        OperationCancelledError: If should_stop() returns True.
    """
    logger = get_global_logger()

    if max_pages <= 0:
        raise ValueError(f"max_pages must be positive, got {max_pages}")
    if max_items is not None and max_items <= 0:
        raise ValueError(f"max_items must be positive, got {max_items}")

    headers = bearer_headers(access_token, {"Accept": "application/json"})
    changes: list[ChangeRecord] = []
    next_link: str | None = None
    delta_token: str | None = None
    pages = 0

    logger.verbose(
        "DELTA",
        "Starting incremental sync" if sync_token else "Starting full initial sync",
    )

    while True:
        if should_stop is not None and should_stop():
            raise OperationCancelledError(f"Delta sync cancelled after {pages} page(s)")
        if pages >= max_pages:
            raise PaginationLimitError(
                f"Delta feed still paginating after {max_pages} page(s)"
            )

        if next_link is not None:
            url, params = next_link, None
        else:
            url = delta_url(base_url)
            params = {"token": sync_token} if sync_token else None

        resp = execute(
            "GET", url, headers, session=session, timeout=timeout, params=params
        )
        pages += 1

        if resp.status_code != 200:
            raise UnexpectedStatusError(resp.status_code, resp.url or url)

        payload = resp.json()

        delta_token = payload.get(DELTA_TOKEN_KEY)
        if not isinstance(delta_token, str):
            raise MalformedResponseError(
                f"Delta page {pages} has no '{DELTA_TOKEN_KEY}'"
            )

        items = payload.get(VALUE_KEY, [])
        if not isinstance(items, list):
            raise MalformedResponseError(f"Delta page {pages} '{VALUE_KEY}' is not a list")

        for item in items:
            changes.append(ChangeRecord.from_api_response(item, tz))

        logger.verbose("DELTA", f"Page {pages}: {len(items)} item(s)")

        if max_items is not None and len(changes) > max_items:
            raise PaginationLimitError(
                f"Delta feed returned more than {max_items} item(s)"
            )

        next_link = payload.get(NEXT_LINK_KEY)
        if next_link is None:
            break
        if not isinstance(next_link, str) or not next_link:
            raise MalformedResponseError(
                f"Delta page {pages} has an invalid '{NEXT_LINK_KEY}'"
            )

    logger.verbose(
        "DELTA", f"Sync complete: {len(changes)} change(s) across {pages} page(s)"
    )
    return DeltaResult(sync_token=delta_token, changes=changes, pages_fetched=pages)
