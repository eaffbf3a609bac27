"""Tests for the storage query helpers (conditions and cursors)."""

from datetime import datetime, timezone

import pytest

from timeledger.core.exceptions import EmailChangeError, EmailChangeErrorCode
from timeledger.domain.entities.email_change_request import RequestStatus
from timeledger.infrastructure.storage.query import Condition, CursorPosition, Operator, decode_cursor, encode_cursor


class TestCondition:
    def test_constructors(self):
        assert Condition.eq("status", "approved") == Condition("status", Operator.EQ, "approved")
        assert Condition.in_("status", ["a", "b"]).value == ("a", "b")
        assert Condition.not_in("status", {"a"}).operator is Operator.NOT_IN
        assert Condition.ge("performed_at", 1).operator is Operator.GE


class TestCursor:
    def test_datetime_cursor_round_trip(self):
        position = CursorPosition(sort_value=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc), key="req-9")

        decoded = decode_cursor(encode_cursor(position))

        assert decoded == position

    def test_enum_cursor_is_stored_by_value(self):
        cursor = encode_cursor(CursorPosition(sort_value=RequestStatus.APPROVED, key="req-1"))

        assert decode_cursor(cursor).sort_value == "approved"

    @pytest.mark.parametrize("cursor", ["not-base64!", "e30=", "bm90IGpzb24="])
    def test_malformed_cursor_is_invalid_request_data(self, cursor):
        with pytest.raises(EmailChangeError) as exc_info:
            decode_cursor(cursor)

        assert exc_info.value.error_code is EmailChangeErrorCode.INVALID_REQUEST_DATA
        assert exc_info.value.status_code == 400
