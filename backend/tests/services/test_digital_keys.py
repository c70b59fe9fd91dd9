"""
数字钥匙服务测试
"""
import base64
from datetime import date, datetime

from keycard.models.ontology import DigitalKey
from keycard.models.events import EventType
from keycard.services.booking_service import BookingService
from keycard.services.digital_key_service import DigitalKeyService, generate_key_token
from keycard_core.result import ErrorCode


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _booking(db, room, guest, checked_in=True):
    service = BookingService(db, event_publisher=lambda e: None, clock=lambda: datetime(2025, 7, 1, 14, 0))
    booking = service.create_booking(room.id, guest.id, date(2025, 7, 1), date(2025, 7, 3)).value
    if checked_in:
        service.check_in(booking.id)
    return booking


def test_token_is_base64_of_32_bytes():
    token = generate_key_token()
    assert len(base64.b64decode(token)) == 32
    assert generate_key_token() != token


class TestDigitalKeyService:

    def test_issue_requires_checked_in(self, db_session, sample_room, sample_guest):
        booking = _booking(db_session, sample_room, sample_guest, checked_in=False)
        result = DigitalKeyService(db_session, lambda e: None).issue_key(booking.id)
        assert result.error_code == ErrorCode.INVALID_TRANSITION

    def test_issue_missing_booking(self, db_session):
        assert DigitalKeyService(db_session, lambda e: None).issue_key(1).error_code == ErrorCode.NOT_FOUND

    def test_reissue_revokes_previous_key(self, db_session, sample_room, sample_guest):
        booking = _booking(db_session, sample_room, sample_guest)
        events = []
        service = DigitalKeyService(db_session, events.append)
        old_key = service.get_key(booking.id)

        result = service.issue_key(booking.id)

        assert result.success
        db_session.refresh(old_key)
        assert old_key.is_revoked
        assert service.get_key(booking.id).id == result.value.id
        assert db_session.query(DigitalKey).filter(DigitalKey.is_revoked == False).count() == 1
        assert events[0].type_key == EventType.DIGITAL_KEY_ISSUED.value

    def test_verify_respects_expiry(self, db_session, sample_room, sample_guest):
        booking = _booking(db_session, sample_room, sample_guest)
        clock = _Clock(datetime(2025, 7, 2, 9, 0))
        service = DigitalKeyService(db_session, lambda e: None, clock=clock)
        token = service.get_key(booking.id).token

        assert service.verify(token)
        clock.now = datetime(2025, 7, 3, 12, 0)
        assert not service.verify(token)

    def test_verify_unknown_token(self, db_session):
        service = DigitalKeyService(db_session, lambda e: None)
        assert not service.verify("not-a-token")
        assert not service.verify("")

    def test_revoke_returns_whether_anything_was_revoked(self, db_session, sample_room, sample_guest):
        booking = _booking(db_session, sample_room, sample_guest)
        events = []
        service = DigitalKeyService(db_session, events.append, clock=lambda: datetime(2025, 7, 2, 9, 0))
        token = service.get_key(booking.id).token

        assert service.revoke_key(booking.id) is True
        assert service.revoke_key(booking.id) is False
        assert not service.verify(token)
        assert service.get_key(booking.id) is None
        assert [e.type_key for e in events] == [EventType.DIGITAL_KEY_REVOKED.value]

    def test_key_detail(self, db_session, sample_room, sample_guest):
        booking = _booking(db_session, sample_room, sample_guest)
        service = DigitalKeyService(db_session, lambda e: None)
        detail = service.get_key_detail(service.get_key(booking.id))
        assert detail["booking_id"] == booking.id
        assert detail["expires_at"] == datetime(2025, 7, 3, 12, 0)
        assert service.get_key_detail(None) is None
