"""
Tests for graphdrive.models module.

Tests change record normalization including:
- UTC to local civil time conversion
- Folder and delete flag independence
- Optional fields
- Validation of required fields
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import UTC, timedelta, timezone

import pytest

from graphdrive.exceptions import MalformedResponseError
from graphdrive.models import ChangeRecord, local_time_from_gmt

UTC_MINUS_7 = timezone(timedelta(hours=-7))
UTC_PLUS_530 = timezone(timedelta(hours=5, minutes=30))


class TestLocalTimeFromGmt:
    """Tests for timestamp conversion."""

    def test_converts_to_fixed_offset(self):
        """Test conversion of a UTC timestamp into UTC-7."""
        assert local_time_from_gmt("2018-04-19T16:23:12Z", UTC_MINUS_7) == "2018-04-19 09:23:12"

    def test_crosses_date_boundary(self):
        """Test that the date rolls back when the offset crosses midnight."""
        assert local_time_from_gmt("2018-01-01T03:00:00Z", UTC_MINUS_7) == "2017-12-31 20:00:00"

    def test_half_hour_offset(self):
        """Test a positive, non-whole-hour offset."""
        assert local_time_from_gmt("2018-04-19T16:23:12Z", UTC_PLUS_530) == "2018-04-19 21:53:12"

    def test_utc_is_identity(self):
        """Test that converting to UTC only reformats."""
        assert local_time_from_gmt("2020-02-29T23:59:59Z", UTC) == "2020-02-29 23:59:59"

    def test_fractional_seconds_are_dropped(self):
        """Test that fractional seconds are accepted and truncated."""
        assert (
            local_time_from_gmt("2018-04-19T16:23:12.987Z", UTC_MINUS_7)
            == "2018-04-19 09:23:12"
        )

    def test_system_zone_when_tz_is_none(self):
        """Test that tz=None yields a well-formed local time string."""
        value = local_time_from_gmt("2018-04-19T16:23:12Z")
        assert len(value) == len("2018-04-19 09:23:12")
        assert value[4] == "-" and value[10] == " "

    @pytest.mark.parametrize(
        "raw",
        ["", "2018-04-19", "2018-04-19 16:23:12", "2018-13-01T00:00:00Z", "yesterday"],
    )
    def test_unparsable_timestamp_raises(self, raw):
        """Test that malformed timestamps raise MalformedResponseError."""
        with pytest.raises(MalformedResponseError):
            local_time_from_gmt(raw, UTC)


class TestChangeRecord:
    """Tests for ChangeRecord.from_api_response."""

    def test_full_item(self, make_item):
        """Test that every field is mapped from a complete item."""
        item = make_item("01ABC", name="photo.jpg", parentReference={"id": "01ROOT"})
        record = ChangeRecord.from_api_response(item, UTC_MINUS_7)

        assert record == ChangeRecord(
            id="01ABC",
            name="photo.jpg",
            parent_id="01ROOT",
            is_folder=False,
            is_delete=False,
            last_modified="2018-04-19 09:23:12",
        )

    def test_deleted_folder_sets_both_flags(self, make_item):
        """Test that folder and deleted facets are independent flags."""
        item = make_item("F1", folder={}, deleted={})
        record = ChangeRecord.from_api_response(item, UTC)

        assert record.is_folder is True
        assert record.is_delete is True

    def test_deleted_file(self, make_item):
        """Test a delete notification for a file."""
        record = ChangeRecord.from_api_response(make_item("X", deleted={"state": "deleted"}), UTC)
        assert record.is_folder is False
        assert record.is_delete is True

    def test_facet_presence_not_truthiness(self, make_item):
        """Test that a null facet value still counts as present."""
        record = ChangeRecord.from_api_response(make_item("X", folder=None), UTC)
        assert record.is_folder is True

    def test_optional_fields_absent(self):
        """Test that name and parent are None when not reported."""
        item = {"id": "X", "lastModifiedDateTime": "2018-04-19T16:23:12Z"}
        record = ChangeRecord.from_api_response(item, UTC)

        assert record.name is None
        assert record.parent_id is None

    def test_parent_reference_not_object(self, make_item):
        """Test that a non-object parentReference is ignored."""
        record = ChangeRecord.from_api_response(make_item("X", parentReference="ROOT"), UTC)
        assert record.parent_id is None

    @pytest.mark.parametrize(
        "item",
        [
            {"lastModifiedDateTime": "2018-04-19T16:23:12Z"},
            {"id": "", "lastModifiedDateTime": "2018-04-19T16:23:12Z"},
            {"id": 42, "lastModifiedDateTime": "2018-04-19T16:23:12Z"},
            {"id": "X"},
            {"id": "X", "lastModifiedDateTime": "not a date"},
            ["id", "X"],
        ],
    )
    def test_invalid_items_are_malformed(self, item):
        """Test that items without usable id or timestamp raise MalformedResponseError."""
        with pytest.raises(MalformedResponseError):
            ChangeRecord.from_api_response(item, UTC)

    def test_empty_id_rejected_on_construction(self):
        """Test that a ChangeRecord cannot be built with an empty id."""
        with pytest.raises(ValueError):
            ChangeRecord(
                id="",
                name=None,
                parent_id=None,
                is_folder=False,
                is_delete=False,
                last_modified="2018-04-19 09:23:12",
            )

    def test_records_are_immutable(self, make_item):
        """Test that ChangeRecord fields cannot be reassigned."""
        record = ChangeRecord.from_api_response(make_item("X"), UTC)
        with pytest.raises(FrozenInstanceError):
            record.name = "renamed"
