"""Tests for raw identifier parsing."""

from uuid import uuid4

import pytest

from buddyflow.application.common.ids import parse_id
from buddyflow.domain.common.exceptions import ValidationError
from buddyflow.domain.common.value_objects import AssignmentId, FlowId


class TestParseId:
    def test_from_string(self) -> None:
        raw = uuid4()
        assert parse_id(FlowId, str(raw), "flow_id") == FlowId(raw)

    def test_from_uuid_and_other_ids(self) -> None:
        raw = uuid4()
        assert parse_id(FlowId, raw, "flow_id").value == raw
        assert parse_id(AssignmentId, FlowId(raw), "assignment_id") == AssignmentId(raw)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_id(FlowId, raw, "flow_id")
        assert exc_info.value.message == "flow_id is required"
        assert exc_info.value.field == "flow_id"

    def test_malformed(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            parse_id(FlowId, "not-a-uuid", "flow_id")
        assert exc_info.value.message == "flow_id is not a valid id"
        assert exc_info.value.value == "not-a-uuid"
