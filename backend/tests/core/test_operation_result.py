"""
OperationResult 与枚举解析测试
"""
import pytest
from keycard_core.result import ErrorCode, OperationResult
from keycard.models.ontology import BookingStatus, TaskStatus, RoomStatus, UserRole


class TestOperationResult:
    def test_ok_factory(self):
        result = OperationResult.ok("done", value=42)
        assert result.success is True
        assert result.value == 42
        assert result.error_code is None
        assert result.data == {}
        assert bool(result) is True

    def test_fail_factory(self):
        result = OperationResult.fail("nope", ErrorCode.NOT_FOUND, data={"id": 1})
        assert result.success is False
        assert result.error_code == ErrorCode.NOT_FOUND
        assert result.data == {"id": 1}
        assert bool(result) is False

    def test_error_code_values(self):
        assert ErrorCode.INVALID_DATE_RANGE.value == "InvalidDateRange"
        assert ErrorCode.ROOM_UNAVAILABLE.value == "RoomUnavailable"
        assert ErrorCode.INVALID_TRANSITION.value == "InvalidTransition"


class TestStatusParsing:

    @pytest.mark.parametrize("raw", ["CheckedIn", "checkedin", "checked_in", "CHECKED_IN", " Checked-In "])
    def test_booking_status_case_insensitive(self, raw):
        assert BookingStatus.parse(raw) == BookingStatus.CHECKED_IN

    def test_task_status_in_progress(self):
        assert TaskStatus.parse("inprogress") == TaskStatus.IN_PROGRESS
        assert TaskStatus.parse("In_Progress") == TaskStatus.IN_PROGRESS

    def test_room_status_out_of_service(self):
        assert RoomStatus.parse("out_of_service") == RoomStatus.OUT_OF_SERVICE

    def test_user_role_housekeeping(self):
        assert UserRole.parse("housekeeping") == UserRole.HOUSEKEEPING

    def test_member_passthrough(self):
        assert BookingStatus.parse(BookingStatus.CANCELLED) is BookingStatus.CANCELLED

    @pytest.mark.parametrize("raw", ["", "   ", "Arrived", None, 3])
    def test_unknown_values_rejected(self, raw):
        with pytest.raises(ValueError):
            BookingStatus.parse(raw)
