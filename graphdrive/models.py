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

"""Change record model for the delta feed.

A ChangeRecord is the normalized form of one element of a delta page's
``value`` list. Folder and delete are independent flags: a deleted folder has
both set.

The server reports ``lastModifiedDateTime`` in UTC. local_time_from_gmt()
turns it into local civil time as a pure function of (timestamp, tzinfo), so
tests can pin the zone instead of depending on the machine's TZ setting.

Example:
    >>> from datetime import timedelta, timezone
    >>> item = {
    ...     "id": "01ABC",
    ...     "name": "photo.jpg",
    ...     "lastModifiedDateTime": "2018-04-19T16:23:12Z",
    ...     "parentReference": {"id": "01ROOT"},
    ... }
    >>> record = ChangeRecord.from_api_response(item, timezone(timedelta(hours=-7)))
    >>> record.last_modified
    '2018-04-19 09:23:12'
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any

from graphdrive.exceptions import MalformedResponseError

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_FOLDER = "folder"
FIELD_DELETED = "deleted"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_LAST_MODIFIED = "lastModifiedDateTime"

GMT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
GMT_FORMAT_FRACTIONAL = "%Y-%m-%dT%H:%M:%S.%fZ"
LOCAL_FORMAT = "%Y-%m-%d %H:%M:%S"


def local_time_from_gmt(gmt_time: str, tz: tzinfo | None = None) -> str:
    """Convert a UTC timestamp string into local civil time.

    Args:
        gmt_time: Timestamp in ``yyyy-MM-ddTHH:mm:ssZ`` form. Fractional
            seconds (``...:12.345Z``) are accepted and dropped.
        tz: Target time zone. None means the system's local zone, resolved
            for the instant the timestamp denotes (so DST is applied as it
            was at that moment, not as it is now).

    Returns:
        The local time formatted as ``yyyy-MM-dd HH:mm:ss``.

    Raises:
        MalformedResponseError: If the timestamp does not match either format.

    Example:
        >>> from datetime import timedelta, timezone
        >>> local_time_from_gmt("2018-04-19T16:23:12Z", timezone(timedelta(hours=-7)))
        '2018-04-19 09:23:12'
    """
    for fmt in (GMT_FORMAT, GMT_FORMAT_FRACTIONAL):
        try:
            parsed = datetime.strptime(gmt_time, fmt)
            break
        except (TypeError, ValueError):
            continue
    else:
        raise MalformedResponseError(f"Unparsable timestamp: {gmt_time!r}")

    utc_time = parsed.replace(tzinfo=UTC, microsecond=0)
    return utc_time.astimezone(tz).strftime(LOCAL_FORMAT)


@dataclass(frozen=True)
class ChangeRecord:
    """One create, update or delete reported by the delta feed.

    Attributes:
        id: Remote item identifier, stable across renames and moves.
        name: Display name, absent on some delete notifications.
        parent_id: Identifier of the containing folder, if reported.
        is_folder: True if the item is a container.
        is_delete: True if the item was removed.
        last_modified: Local civil time, ``yyyy-MM-dd HH:mm:ss``.
    """

    id: str
    name: str | None
    parent_id: str | None
    is_folder: bool
    is_delete: bool
    last_modified: str

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("ChangeRecord.id must be a non-empty string")

    @classmethod
    def from_api_response(
        cls, item: dict[str, Any], tz: tzinfo | None = None
    ) -> ChangeRecord:
        """Create a ChangeRecord from one delta ``value`` element.

        Args:
            item: The JSON object for one drive item.
            tz: Target time zone for ``last_modified`` (see
                local_time_from_gmt()).

        Returns:
            The normalized change record.

        Raises:
            MalformedResponseError: If ``id`` or ``lastModifiedDateTime`` is
                missing or unusable.
        """
        if not isinstance(item, dict):
            raise MalformedResponseError(
                f"Delta item must be an object, got {type(item).__name__}"
            )

        item_id = item.get(FIELD_ID)
        if not isinstance(item_id, str) or not item_id:
            raise MalformedResponseError(f"Delta item has no usable 'id': {item!r}")

        last_modified_raw = item.get(FIELD_LAST_MODIFIED)
        if not isinstance(last_modified_raw, str):
            raise MalformedResponseError(
                f"Delta item {item_id} has no '{FIELD_LAST_MODIFIED}'"
            )

        name = item.get(FIELD_NAME)
        parent_id = None
        parent_reference = item.get(FIELD_PARENT_REFERENCE)
        if isinstance(parent_reference, dict):
            parent_id = parent_reference.get(FIELD_ID)

        return cls(
            id=item_id,
            name=name if isinstance(name, str) else None,
            parent_id=parent_id if isinstance(parent_id, str) else None,
            # Presence tests only; the facet values are ignored.
            is_folder=FIELD_FOLDER in item,
            is_delete=FIELD_DELETED in item,
            last_modified=local_time_from_gmt(last_modified_raw, tz),
        )
