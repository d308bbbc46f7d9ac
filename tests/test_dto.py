"""Tests for src.data.dto — backend JSON contract and conversions."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from src.data.dto import (
    ApiChatCreateRequest,
    ApiChatEntry,
    ApiTimelineResponse,
    entry_from_api,
    parse_timestamp,
    task_from_api,
)
from src.data.models import ChatType, InvalidTimestampError, SystemKind, TaskStatus


class TestParseTimestamp:
    def test_local_iso(self):
        assert parse_timestamp("2025-03-02T09:15:00") == datetime(2025, 3, 2, 9, 15)

    def test_fractional_seconds(self):
        assert parse_timestamp("2025-03-02T09:15:00.123456").minute == 15

    def test_utc_z_suffix_converted_to_local_time(self):
        # TIMEZONE is Asia/Seoul in the test environment (UTC+9)
        ts = parse_timestamp("2025-03-02T00:15:00Z")
        assert ts == datetime(2025, 3, 2, 9, 15)
        assert ts.tzinfo is None

    def test_offset_converted_to_local_time(self):
        assert parse_timestamp("2025-03-02T09:15:00+09:00") == datetime(2025, 3, 2, 9, 15)
        assert parse_timestamp("2025-03-02T01:15:00+01:00") == datetime(2025, 3, 2, 9, 15)

    def test_missing_raises(self):
        with pytest.raises(InvalidTimestampError):
            parse_timestamp(None)
        with pytest.raises(InvalidTimestampError):
            parse_timestamp("")

    def test_malformed_raises(self):
        with pytest.raises(InvalidTimestampError):
            parse_timestamp("not a date")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_timestamp("nope")


class TestTimelinePayload:
    PAYLOAD = {
        "date": "2025-03-02",
        "tasks": [
            {
                "id": 7, "name": "math", "color": "#3b82f6", "status": "FINISHED",
                "date": "2025-03-02",
                "segments": [
                    {"id": 11, "startTime": "2025-03-02T09:15:00", "endTime": "2025-03-02T09:45:00"},
                ],
            },
        ],
        "entries": [
            {
                "id": 3, "createdAt": "2025-03-02T09:15:00", "text": "math task started.",
                "type": "SYSTEM", "taskName": "math", "systemKind": "TASK_START",
            },
            {
                "id": 4, "createdAt": "2025-03-02T09:20:00", "text": "hi",
                "type": "USER", "taskName": None, "systemKind": None,
            },
        ],
    }

    def test_validates_camel_case_payload(self):
        response = ApiTimelineResponse.model_validate(self.PAYLOAD)
        assert response.tasks[0].segments[0].end_time == "2025-03-02T09:45:00"
        assert response.entries[0].system_kind is SystemKind.TASK_START
        assert response.entries[1].task_name is None

    def test_task_conversion(self):
        response = ApiTimelineResponse.model_validate(self.PAYLOAD)
        task = task_from_api(response.tasks[0])
        assert task.status is TaskStatus.FINISHED
        assert task.segments[0].start == datetime(2025, 3, 2, 9, 15)
        assert task.segments[0].end == datetime(2025, 3, 2, 9, 45)

    def test_entry_conversion(self):
        response = ApiTimelineResponse.model_validate(self.PAYLOAD)
        entry = entry_from_api(response.entries[0])
        assert entry.type is ChatType.SYSTEM
        assert entry.time == "09:15"
        assert entry.task_name == "math"

    def test_unknown_status_rejected(self):
        bad = {"date": "2025-03-02", "tasks": [{"name": "x", "color": "#000000", "status": "PAUSED"}]}
        with pytest.raises(ValidationError):
            ApiTimelineResponse.model_validate(bad)

    def test_entry_with_bad_timestamp(self):
        entry = ApiChatEntry(id=1, created_at="??", text="x", type="USER")
        with pytest.raises(InvalidTimestampError):
            entry_from_api(entry)


class TestChatCreateRequest:
    def test_dumps_backend_field_names(self):
        request = ApiChatCreateRequest(
            date="2025-03-02", text="math task started.", type=ChatType.SYSTEM,
            task_name="math", system_kind=SystemKind.TASK_START,
        )
        assert request.model_dump(mode="json", by_alias=True) == {
            "date": "2025-03-02",
            "text": "math task started.",
            "type": "SYSTEM",
            "taskName": "math",
            "systemKind": "TASK_START",
        }

    def test_user_message_nulls(self):
        request = ApiChatCreateRequest(date="2025-03-02", text="hi", type=ChatType.USER)
        body = request.model_dump(mode="json", by_alias=True)
        assert body["taskName"] is None
        assert body["systemKind"] is None
