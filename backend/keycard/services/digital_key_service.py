"""
数字钥匙服务 - 本体操作层
入住时签发、退房时吊销；令牌为 32 字节随机数的 Base64
"""
import base64
import logging
import secrets
from datetime import datetime, time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from keycard.config import settings
from keycard.models.ontology import Booking, BookingStatus, DigitalKey
from keycard.models.events import EventType, DigitalKeyEventData
from keycard.services.event_bus import event_bus, Event
from keycard_core.result import ErrorCode, OperationResult

logger = logging.getLogger(__name__)


def generate_key_token() -> str:
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


class DigitalKeyService:
    """数字钥匙服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 clock: Callable[[], datetime] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self._now = clock or datetime.now

    def key_expiry(self, booking: Booking) -> datetime:
        """钥匙在离店日的退房时刻失效"""
        return datetime.combine(booking.check_out_date, time(hour=settings.KEY_CHECKOUT_HOUR))

    def active_keys(self, booking_id: int) -> List[DigitalKey]:
        return self.db.query(DigitalKey).filter(
            DigitalKey.booking_id == booking_id,
            DigitalKey.is_revoked == False
        ).order_by(DigitalKey.id.desc()).all()

    # ---------- 供预订服务在同一事务内调用（不提交） ----------

    def issue_for_booking(self, booking: Booking, operator_id: Optional[int] = None) -> DigitalKey:
        """为已入住的预订签发新钥匙，同一预订仍有效的旧钥匙一并吊销"""
        for old_key in self.active_keys(booking.id):
            old_key.is_revoked = True

        key = DigitalKey(
            token=generate_key_token(),
            issued_at=self._now(),
            expires_at=self.key_expiry(booking),
            booking_id=booking.id,
            created_by=operator_id
        )
        self.db.add(key)
        self.db.flush()
        logger.info(f"Digital key {key.id} issued for booking {booking.id}")
        return key

    def revoke_for_booking(self, booking_id: int) -> int:
        """吊销预订的全部有效钥匙，返回吊销数量"""
        keys = self.active_keys(booking_id)
        for key in keys:
            key.is_revoked = True
        if keys:
            logger.info(f"Revoked {len(keys)} digital key(s) for booking {booking_id}")
        return len(keys)

    def publish_key_event(self, event_type: EventType, key: DigitalKey,
                          operator_id: Optional[int] = None) -> None:
        self._publish_event(Event(
            event_type=event_type,
            timestamp=datetime.now(),
            data=DigitalKeyEventData(
                key_id=key.id,
                booking_id=key.booking_id,
                expires_at=key.expires_at,
                operator_id=operator_id
            ).to_dict(),
            source="digital_key_service"
        ))

    # ---------- 对外操作 ----------

    def issue_key(self, booking_id: int, operator_id: Optional[int] = None) -> OperationResult:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)
        if booking.status != BookingStatus.CHECKED_IN:
            return OperationResult.fail(
                f"只有已入住的预订才能签发钥匙（当前状态: {booking.status.value}）",
                ErrorCode.INVALID_TRANSITION
            )

        key = self.issue_for_booking(booking, operator_id)
        self.db.commit()
        self.db.refresh(key)

        self.publish_key_event(EventType.DIGITAL_KEY_ISSUED, key, operator_id)
        return OperationResult.ok("钥匙已签发", value=key)

    def get_key(self, booking_id: int) -> Optional[DigitalKey]:
        """预订最新的未吊销钥匙"""
        keys = self.active_keys(booking_id)
        return keys[0] if keys else None

    @staticmethod
    def get_key_detail(key: Optional[DigitalKey]) -> Optional[dict]:
        if key is None:
            return None
        return {
            "id": key.id,
            "token": key.token,
            "issued_at": key.issued_at,
            "expires_at": key.expires_at,
            "is_revoked": key.is_revoked,
            "booking_id": key.booking_id,
        }

    def revoke_key(self, booking_id: int, operator_id: Optional[int] = None) -> bool:
        """吊销预订的有效钥匙；没有可吊销的钥匙时返回 False"""
        keys = self.active_keys(booking_id)
        if not keys:
            return False
        self.revoke_for_booking(booking_id)
        self.db.commit()
        for key in keys:
            self.publish_key_event(EventType.DIGITAL_KEY_REVOKED, key, operator_id)
        return True

    def verify(self, token: str) -> bool:
        """令牌有效：未吊销、未过期，且所属预订处于入住状态"""
        if not token:
            return False
        key = self.db.query(DigitalKey).filter(DigitalKey.token == token).first()
        if not key or not key.is_valid_at(self._now()):
            return False
        return key.booking.status == BookingStatus.CHECKED_IN
