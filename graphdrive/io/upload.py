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
Resumable chunked upload for graphdrive.

This module drives an already-created upload session: it PUTs the payload one
byte range at a time until the server answers with the final item metadata
instead of another "next expected range".

Key Features:

- **Server-Driven Offsets** - After every chunk the next offset is taken from the
  server's ``nextExpectedRanges``, not from a local counter. If the server
  already holds more (or less) than this client thinks it sent, the next PUT
  follows the server.
- **Strictly Sequential** - One chunk in flight at a time; each range depends on
  the previous acknowledgement.
- **Cooperative Cancellation** - An optional should_stop() callback is checked
  before every chunk.
- **No Hidden Retries** - Transport failures and unexpected statuses end the
  operation. The caller may query get_upload_status() on the session and call
  upload_bytes() again with start_offset to resume.

Constants:

- UPLOAD_ALIGNMENT (int): Chunk sizes must be multiples of 320 KiB.
- DEFAULT_CHUNK_SIZE (int): One alignment unit (327680 bytes).

Example:
Basic upload to an existing session:

    >>> from graphdrive.io import upload_bytes
    >>> result = upload_bytes(
    ...     upload_url=session.upload_url,
    ...     data=payload,
    ...     access_token=token,
    ... )
    >>> print(result.web_url, result.remote_id)

Resume after a failure:

    >>> offset = get_upload_status(session.upload_url, token)
    >>> result = upload_bytes(session.upload_url, payload, token, start_offset=offset)

Wire shapes:
- Intermediate chunk response (202):
  ``{"expirationDateTime": "...", "nextExpectedRanges": ["327680-"]}``
- Terminal chunk response (200/201): ``{"id": "...", "webUrl": "...", ...}``
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
import math

import requests

from graphdrive.exceptions import (
    MalformedResponseError,
    OperationCancelledError,
    UnexpectedStatusError,
)
from graphdrive.io.transport import DEFAULT_TIMEOUT, bearer_headers, execute
from graphdrive.logging import get_global_logger
from graphdrive.results import UploadResult

UPLOAD_ALIGNMENT = 320 * 1024
DEFAULT_CHUNK_SIZE = UPLOAD_ALIGNMENT
# Default chunk cap, as a multiple of the chunks an exactly-acknowledged upload needs
MAX_CHUNKS_FACTOR = 4


@dataclass
class UploadProgress:
    """Mutable state of one upload_bytes() run.

    Created at the start of an upload, advanced only by the engine's own loop,
    and discarded when the run ends.
    """

    total_size: int
    next_expected_offset: int = 0
    chunks_sent: int = 0
    web_url: str | None = None
    remote_id: str | None = None

    @property
    def done(self) -> bool:
        return self.web_url is not None


def validate_chunk_size(chunk_size: int) -> None:
    """Reject chunk sizes the upload service will refuse.

    Raises:
        ValueError: If chunk_size is not a positive multiple of UPLOAD_ALIGNMENT.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_size % UPLOAD_ALIGNMENT:
        raise ValueError(
            f"chunk_size must be a multiple of {UPLOAD_ALIGNMENT} bytes, "
            f"got {chunk_size}"
        )


def chunk_end(start: int, chunk_size: int, total_size: int) -> int:
    """Inclusive end offset of the chunk starting at start (clamped to the payload)."""
    return min(start + chunk_size - 1, total_size - 1)


def content_range(start: int, end: int, total_size: int) -> str:
    """Format a Content-Range header value, e.g. ``bytes 0-327679/1048576``."""
    return f"bytes {start}-{end}/{total_size}"


def chunk_ranges(total_size: int, chunk_size: int) -> Iterator[tuple[int, int]]:
    """Yield the inclusive (start, end) ranges covering [0, total_size - 1].

    This is the sequence upload_bytes() sends when the server acknowledges
    every chunk exactly.

    Raises:
        ValueError: If total_size or chunk_size is not positive.

    Example:
        >>> list(chunk_ranges(10, 4))
        [(0, 3), (4, 7), (8, 9)]
    """
    if total_size <= 0:
        raise ValueError(f"total_size must be positive, got {total_size}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    start = 0
    while start < total_size:
        end = chunk_end(start, chunk_size, total_size)
        yield start, end
        start = end + 1


def parse_next_expected_offset(ranges: object) -> int:
    """Extract the next byte offset from a ``nextExpectedRanges`` value.

    Only the first entry is used; its text before the first '-' is the offset
    (``"327680-"`` and ``"327680-655359"`` both give 327680).

    Raises:
        MalformedResponseError: If ranges is not a non-empty list whose first
            entry starts with an integer.
    """
    if not isinstance(ranges, list) or not ranges:
        raise MalformedResponseError(
            f"'nextExpectedRanges' must be a non-empty list, got {ranges!r}"
        )
    first = ranges[0]
    if not isinstance(first, str):
        raise MalformedResponseError(f"Range entry must be a string, got {first!r}")
    prefix = first.split("-", 1)[0].strip()
    try:
        return int(prefix)
    except ValueError as err:
        raise MalformedResponseError(f"Unparsable range entry: {first!r}") from err


def upload_bytes(
    upload_url: str,
    data: bytes,
    access_token: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    start_offset: int = 0,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    max_chunks: int | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> UploadResult:
    """Upload data to an upload session, one Content-Range chunk at a time.

    Args:
        upload_url: Session URL from a prior createUploadSession call.
        data: The complete payload. Its length is the total size.
        access_token: Bearer token sent on every chunk.
        chunk_size: Bytes per chunk; a positive multiple of UPLOAD_ALIGNMENT.
            The last chunk may be shorter.
        start_offset: Offset of the first chunk (from get_upload_status()
            when resuming).
        session: Optional requests session reused for every chunk.
        timeout: Per-chunk timeout in seconds.
        max_chunks: Maximum number of chunk PUTs before giving up. Defaults
            to MAX_CHUNKS_FACTOR times the chunks an exact run needs, so a
            server that keeps asking for the same range cannot loop forever.
        should_stop: Called before each chunk; returning True cancels.

    Returns:
        UploadResult with the item's web URL and id.

    Raises:
        ValueError: If data is empty, chunk_size or max_chunks is invalid,
            or start_offset is outside the payload.
        TransportError: If a chunk request gets no response.
        UnexpectedStatusError: If a chunk response is not 2xx.
        MalformedResponseError: If a chunk response is not the expected JSON
            shape, or reports an offset outside the payload, or the upload
            does not finish within max_chunks PUTs.
        OperationCancelledError: If should_stop() returns True.
    """
    logger = get_global_logger()

    total_size = len(data)
    if total_size == 0:
        raise ValueError("cannot upload an empty payload through an upload session")
    validate_chunk_size(chunk_size)
    if not 0 <= start_offset < total_size:
        raise ValueError(
            f"start_offset {start_offset} is outside the payload (size {total_size})"
        )

    if max_chunks is None:
        max_chunks = MAX_CHUNKS_FACTOR * math.ceil(total_size / chunk_size)
    elif max_chunks <= 0:
        raise ValueError(f"max_chunks must be positive, got {max_chunks}")

    progress = UploadProgress(total_size=total_size, next_expected_offset=start_offset)
    logger.verbose(
        "UPLOAD",
        f"Uploading {total_size} bytes in chunks of {chunk_size} "
        f"(starting at {start_offset})",
    )

    while not progress.done:
        if should_stop is not None and should_stop():
            raise OperationCancelledError(
                f"Upload cancelled at offset {progress.next_expected_offset} "
                f"of {total_size}"
            )
        if progress.chunks_sent >= max_chunks:
            raise MalformedResponseError(
                f"Upload not finished after {max_chunks} chunk(s); server still "
                f"expects offset {progress.next_expected_offset}"
            )

        start = progress.next_expected_offset
        end = chunk_end(start, chunk_size, total_size)
        header = content_range(start, end, total_size)
        logger.verbose("UPLOAD", f"PUT {header}")

        resp = execute(
            "PUT",
            upload_url,
            bearer_headers(access_token, {"Content-Range": header}),
            data[start : end + 1],
            session=session,
            timeout=timeout,
        )
        progress.chunks_sent += 1

        if not resp.ok:
            raise UnexpectedStatusError(
                resp.status_code, upload_url, f"chunk {header} rejected"
            )

        payload = resp.json()
        logger.debug("UPLOAD", f"Chunk response: {payload}")

        web_url = payload.get("webUrl")
        if web_url is not None:
            if not isinstance(web_url, str):
                raise MalformedResponseError(f"'webUrl' must be a string: {web_url!r}")
            remote_id = payload.get("id")
            progress.web_url = web_url
            progress.remote_id = remote_id if isinstance(remote_id, str) else None
            break

        if "nextExpectedRanges" not in payload:
            raise MalformedResponseError(
                "Chunk response has neither 'webUrl' nor 'nextExpectedRanges'"
            )
        next_offset = parse_next_expected_offset(payload["nextExpectedRanges"])
        if not 0 <= next_offset < total_size:
            raise MalformedResponseError(
                f"Server expects offset {next_offset}, outside payload of "
                f"{total_size} bytes"
            )
        if next_offset != end + 1:
            logger.verbose(
                "UPLOAD",
                f"Server expects offset {next_offset} (local expectation "
                f"{end + 1}); following the server",
            )
        progress.next_expected_offset = next_offset

    logger.verbose(
        "UPLOAD",
        f"Upload complete after {progress.chunks_sent} chunk(s): {progress.web_url}",
    )
    return UploadResult(
        web_url=progress.web_url,
        remote_id=progress.remote_id,
        chunks_sent=progress.chunks_sent,
    )


def get_upload_status(
    upload_url: str,
    access_token: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> int:
    """Ask an upload session which byte offset it expects next.

    Args:
        upload_url: Session URL.
        access_token: Bearer token.
        session: Optional requests session.
        timeout: Request timeout in seconds.

    Returns:
        The next expected byte offset.

    Raises:
        TransportError: If the request gets no response.
        UnexpectedStatusError: If the response is not 200.
        MalformedResponseError: If ``nextExpectedRanges`` is missing or
            unparsable.
    """
    resp = execute(
        "GET",
        upload_url,
        bearer_headers(access_token, {"Accept": "application/json"}),
        session=session,
        timeout=timeout,
    )
    if resp.status_code != 200:
        raise UnexpectedStatusError(resp.status_code, upload_url)

    payload = resp.json()
    if "nextExpectedRanges" not in payload:
        raise MalformedResponseError("Upload status has no 'nextExpectedRanges'")
    offset = parse_next_expected_offset(payload["nextExpectedRanges"])
    get_global_logger().verbose("UPLOAD", f"Session expects offset {offset}")
    return offset
