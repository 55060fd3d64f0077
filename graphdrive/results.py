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

"""Public API return types for graphdrive.

This module defines dataclasses for return values from public API functions:
chunked uploads, delta syncs and upload-session creation.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from graphdrive.delta import sync_delta
        from graphdrive.results import DeltaResult

        result: DeltaResult = sync_delta(base_url, token)
        for change in result.changes:
            print(change.id, change.is_delete)
        save_somewhere(result.sync_token)
        ```

Note:
    Only public API return types belong in this module. Domain types (like
    ChangeRecord) live in graphdrive.models, and internal state (like
    UploadProgress) stays next to the engine that mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from graphdrive.models import ChangeRecord


@dataclass(frozen=True)
class UploadResult:
    """Result from a completed chunked upload.

    Attributes:
        web_url: Browser URL of the uploaded item.
        remote_id: Drive item identifier, if the server returned one.
        chunks_sent: Number of chunk PUT requests issued.
        sharing_url: Sharing link created after the upload, if requested.
    """

    web_url: str
    remote_id: str | None
    chunks_sent: int
    sharing_url: str | None = None

    def with_sharing_url(self, sharing_url: str) -> UploadResult:
        """Return a copy carrying a sharing link."""
        return replace(self, sharing_url=sharing_url)


@dataclass(frozen=True)
class DeltaResult:
    """Result from a delta sync walk.

    Attributes:
        sync_token: Continuation token to replay on the next sync (opaque).
        changes: Change records from every page, in server order.
        pages_fetched: Number of pages requested.
    """

    sync_token: str
    changes: list[ChangeRecord]
    pages_fetched: int


@dataclass(frozen=True)
class UploadSession:
    """A freshly created resumable upload session.

    Attributes:
        upload_url: Session URL that chunk PUTs are sent to.
        expiration_date_time: When the server will discard the session.
        next_expected_ranges: Ranges the server still expects ("start-end"
            or "start-").
    """

    upload_url: str
    expiration_date_time: str
    next_expected_ranges: list[str]
