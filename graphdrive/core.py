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

"""Core orchestration for graphdrive.

This module wires configuration, the drive client and the two engines into
the multi-step workflows behind the CLI commands.

Workflows:

upload_file:
    1. Read the local file
    2. Create an upload session in the app folder (empty files skip this and
       use a single content PUT)
    3. Upload the payload chunk by chunk
    4. Optionally create a sharing link for the new item

sync_changes:
    1. Resolve the configured time zone and pagination caps
    2. Walk the delta feed from the given token
    3. Return the new token and change records (storing the token is the
       caller's job)

Example:
    Upload a file and share it:
        ```python
        from pathlib import Path
        from graphdrive.config import load_config
        from graphdrive.core import upload_file

        config = load_config(Path("graphdrive.yaml"))
        result = upload_file(Path("photo.jpg"), config, share=True)
        print(result.web_url, result.sharing_url)
        ```
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from graphdrive.client import DriveClient
from graphdrive.config import require_access_token, resolve_time_zone
from graphdrive.logging import get_global_logger
from graphdrive.results import DeltaResult, UploadResult


def make_client(config: dict[str, Any]) -> DriveClient:
    """Build a DriveClient from a loaded configuration.

    Raises:
        ConfigError: If no access token is configured.
    """
    graph = config["graph"]
    return DriveClient(
        require_access_token(config),
        graph["base_url"],
        timeout=graph["timeout"],
    )


def upload_file(
    file_path: Path,
    config: dict[str, Any],
    *,
    remote_name: str | None = None,
    share: bool | None = None,
    client: DriveClient | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> UploadResult:
    """Upload a local file into the app folder.

    Args:
        file_path: Local file to upload.
        config: Loaded configuration (see graphdrive.config.load_config).
        remote_name: Name in the drive. Defaults to the local file name.
        share: Create a sharing link afterwards. None uses
            upload.create_sharing_link from the config.
        client: Optional pre-built client (a new one is created and closed
            otherwise).
        should_stop: Cancellation callback checked before each chunk.

    Returns:
        UploadResult with web URL, item id and, if requested, sharing URL.

    Raises:
        FileNotFoundError: If file_path doesn't exist.
        ConfigError: If no access token is configured.
        NetworkError: On any request failure (see graphdrive.exceptions).
        OperationCancelledError: If should_stop() returns True.
    """
    logger = get_global_logger()
    upload_cfg = config["upload"]
    name = remote_name or file_path.name
    if share is None:
        share = upload_cfg["create_sharing_link"]
    total_steps = 3 if share else 2

    data = file_path.read_bytes()

    own_client = client is None
    if own_client:
        client = make_client(config)
    try:
        if not data:
            logger.step(1, total_steps, f"Uploading empty file {name}...")
            web_url = client.upload_small_file(name, data)
            result = UploadResult(web_url=web_url, remote_id=None, chunks_sent=0)
            logger.step(2, total_steps, "Upload complete (single request)")
        else:
            logger.step(1, total_steps, f"Creating upload session for {name}...")
            session = client.create_upload_session(
                name, upload_cfg["conflict_behavior"]
            )
            logger.verbose("UPLOAD", f"Session expires {session.expiration_date_time}")

            logger.step(2, total_steps, f"Uploading {len(data)} bytes...")
            result = client.upload_bytes(
                session.upload_url,
                data,
                chunk_size=upload_cfg["chunk_size"],
                should_stop=should_stop,
            )

        if share:
            if result.remote_id is None:
                logger.warning("UPLOAD", "Server returned no item id; skipping sharing link")
            else:
                logger.step(3, total_steps, "Creating sharing link...")
                link = client.create_sharing_link(
                    result.remote_id,
                    upload_cfg["sharing_link_type"],
                    upload_cfg["sharing_link_scope"],
                )
                result = result.with_sharing_url(link)
    finally:
        if own_client:
            client.close()

    return result


def sync_changes(
    config: dict[str, Any],
    sync_token: str | None = None,
    *,
    client: DriveClient | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> DeltaResult:
    """Run a delta sync with the configured caps and time zone.

    Args:
        config: Loaded configuration.
        sync_token: Token from the previous sync, or None for a full sync.
        client: Optional pre-built client.
        should_stop: Cancellation callback checked before each page.

    Returns:
        DeltaResult with the new token and every change record.

    Raises:
        ConfigError: If no access token is configured.
        NetworkError: On any request failure (see graphdrive.exceptions).
        OperationCancelledError: If should_stop() returns True.
    """
    delta_cfg = config["delta"]

    own_client = client is None
    if own_client:
        client = make_client(config)
    try:
        return client.sync_delta(
            sync_token,
            max_pages=delta_cfg["max_pages"],
            max_items=delta_cfg["max_items"],
            tz=resolve_time_zone(config),
            should_stop=should_stop,
        )
    finally:
        if own_client:
            client.close()
