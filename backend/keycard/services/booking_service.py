"""
预订服务 - 预订生命周期管理
管理 Booking 对象（生命周期的聚合根）

状态机：Reserved -> CheckedIn -> CheckedOut，Reserved -> Cancelled
业务规则违反时返回 OperationResult.fail，而不是抛出异常；
数据库异常照常向上抛出，由会话回滚。

业务联动：
- 入住：房间 Occupied，签发数字钥匙
- 退房：房间 Dirty，创建清洁任务，吊销钥匙，生成发票
- 取消：今天没有其他有效预订占用时房间放回 Vacant
"""
import logging
import secrets
from datetime import datetime, date
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from keycard.config import settings
from keycard.models.ontology import (
    Booking, BookingStatus, Room, RoomStatus, RoomType, User
)
from keycard.models.events import (
    EventType, BookingEventData, RoomStatusChangedData
)
from keycard.models.state_machines import booking_state_machine, BookingTrigger
from keycard.services.availability_service import AvailabilityService
from keycard.services.digital_key_service import DigitalKeyService
from keycard.services.invoice_service import InvoiceService
from keycard.services.task_service import TaskService
from keycard.services.event_bus import event_bus, Event
from keycard_core.result import ErrorCode, OperationResult

logger = logging.getLogger(__name__)

CONFIRMATION_CODE_ATTEMPTS = 20


class BookingService:
    """预订生命周期服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 clock: Callable[[], datetime] = None,
                 today_provider: Callable[[], date] = None):
        self.db = db
        # 支持依赖注入事件发布器和时钟，便于测试
        self._publish_event = event_publisher or event_bus.publish
        self._now = clock or datetime.now
        self._today = today_provider or (lambda: self._now().date())

        self.availability = AvailabilityService(db)
        self.key_service = DigitalKeyService(db, self._publish_event, self._now)
        self.invoice_service = InvoiceService(db, self._publish_event, self._now)
        self.task_service = TaskService(db, self._publish_event)

    # ============== 内部工具 ==============

    def _generate_confirmation_code(self) -> str:
        """确认码：KCN-######，冲突时重新生成"""
        for _ in range(CONFIRMATION_CODE_ATTEMPTS):
            code = f"{settings.CONFIRMATION_CODE_PREFIX}-{secrets.randbelow(10 ** 6):06d}"
            exists = self.db.query(Booking.id).filter(Booking.confirmation_code == code).first()
            if not exists:
                return code
        raise RuntimeError("无法生成唯一的确认码")

    @staticmethod
    def calculate_total(nightly_rate, check_in_date: date, check_out_date: date) -> Decimal:
        """房费总额 = 每晚房价 × 晚数（至少 1 晚）"""
        nights = max(1, (check_out_date - check_in_date).days)
        return Decimal(str(nightly_rate)) * nights

    @staticmethod
    def _validate_stay(check_in_date: date, check_out_date: date,
                       adults: int, children: int) -> Optional[OperationResult]:
        if check_out_date <= check_in_date:
            return OperationResult.fail("离店日期必须晚于入住日期", ErrorCode.INVALID_DATE_RANGE)
        if adults < 0 or children < 0:
            return OperationResult.fail("入住人数不能为负数", ErrorCode.INVALID_GUEST_COUNT)
        return None

    def _booking_event(self, booking: Booking, operator_id: Optional[int]) -> Dict:
        return BookingEventData(
            booking_id=booking.id,
            confirmation_code=booking.confirmation_code,
            room_id=booking.room_id,
            room_number=booking.room.room_number,
            guest_id=booking.guest_id,
            guest_name=booking.guest.full_name if booking.guest else "",
            check_in_date=booking.check_in_date.isoformat(),
            check_out_date=booking.check_out_date.isoformat(),
            status=booking.status.value,
            operator_id=operator_id
        ).to_dict()

    def _set_room_status(self, room: Room, new_status: RoomStatus, operator_id: Optional[int],
                         reason: str, pending: List[Event]) -> None:
        """修改房态，并把房态变更事件放入待发布列表（提交后发布）"""
        old_status = room.status
        if old_status == new_status:
            return
        room.status = new_status
        pending.append(Event(
            event_type=EventType.ROOM_STATUS_CHANGED,
            timestamp=datetime.now(),
            data=RoomStatusChangedData(
                room_id=room.id,
                room_number=room.room_number,
                old_status=old_status.value if old_status else "",
                new_status=new_status.value,
                changed_by=operator_id,
                reason=reason
            ).to_dict(),
            source="booking_service"
        ))

    def _publish_all(self, events: List[Event]) -> None:
        for event in events:
            self._publish_event(event)

    def _reserve(self, room_id: int, guest: User, check_in_date: date, check_out_date: date,
                 adults: int, children: int, is_prepaid: bool,
                 created_by: Optional[int]) -> OperationResult:
        """
        锁定房间后检查重叠并写入预订

        锁在重叠查询之前获取，同一房间的并发预订在这里串行化；
        失败时回滚以释放锁
        """
        room = self.availability.lock_room(room_id)
        if not room:
            self.db.rollback()
            return OperationResult.fail("房间不存在", ErrorCode.NOT_FOUND)
        if not room.is_active:
            self.db.rollback()
            return OperationResult.fail(f"房间 {room.room_number} 已停用", ErrorCode.ROOM_UNAVAILABLE)

        conflicts = self.availability.find_conflicts(room.id, check_in_date, check_out_date)
        if conflicts:
            conflict_ids = [b.id for b in conflicts]
            self.db.rollback()
            return OperationResult.fail(
                "所选日期该房间已被预订",
                ErrorCode.ROOM_UNAVAILABLE,
                data={"conflicting_booking_ids": conflict_ids}
            )

        booking = Booking(
            confirmation_code=self._generate_confirmation_code(),
            room_id=room.id,
            guest_id=guest.id,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            adults=adults,
            children=children,
            total_amount=self.calculate_total(room.room_type.base_rate, check_in_date, check_out_date),
            extra_fees=Decimal("0"),
            is_prepaid=is_prepaid,
            status=BookingStatus.RESERVED,
            created_by=created_by
        )
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"Booking {booking.confirmation_code} created for room {room.room_number} "
            f"({check_in_date} ~ {check_out_date})"
        )
        self._publish_event(Event(
            event_type=EventType.BOOKING_CREATED,
            timestamp=datetime.now(),
            data=self._booking_event(booking, created_by),
            source="booking_service"
        ))
        return OperationResult.ok("预订成功", value=booking)

    # ============== 查询 ==============

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def list_bookings(self, from_date: Optional[date] = None,
                      to_date: Optional[date] = None,
                      status: Optional[str] = None,
                      guest_name: Optional[str] = None) -> OperationResult:
        """
        获取预订列表（最新的在前）

        from_date / to_date 按入住日期过滤；status 为字符串，大小写不敏感，
        未知状态返回 InvalidStatus
        """
        query = self.db.query(Booking)

        if status is not None and status.strip():
            try:
                parsed = BookingStatus.parse(status)
            except ValueError as e:
                return OperationResult.fail(str(e), ErrorCode.INVALID_STATUS)
            query = query.filter(Booking.status == parsed)
        if from_date:
            query = query.filter(Booking.check_in_date >= from_date)
        if to_date:
            query = query.filter(Booking.check_in_date <= to_date)
        if guest_name:
            query = query.join(User, Booking.guest_id == User.id).filter(
                User.full_name.contains(guest_name)
            )

        bookings = query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
        return OperationResult.ok(f"共 {len(bookings)} 条预订", value=bookings)

    def get_booking_detail(self, booking: Booking) -> dict:
        """组装预订详情（含当前有效的数字钥匙）"""
        key = self.key_service.get_key(booking.id)
        return {
            "id": booking.id,
            "confirmation_code": booking.confirmation_code,
            "room_id": booking.room_id,
            "room_number": booking.room.room_number,
            "guest_id": booking.guest_id,
            "guest_name": booking.guest.full_name if booking.guest else "",
            "check_in_date": booking.check_in_date,
            "check_out_date": booking.check_out_date,
            "nights": booking.nights,
            "adults": booking.adults,
            "children": booking.children,
            "total_amount": booking.total_amount,
            "extra_fees": booking.extra_fees or Decimal("0"),
            "is_prepaid": booking.is_prepaid,
            "status": booking.status,
            "check_in_time": booking.check_in_time,
            "check_out_time": booking.check_out_time,
            "created_at": booking.created_at,
            "digital_key": self.key_service.get_key_detail(key),
        }

    # ============== 生命周期操作 ==============

    def create_booking(self, room_id: int, guest_id: int, check_in_date: date,
                       check_out_date: date, adults: int = 1, children: int = 0,
                       is_prepaid: bool = False, created_by: Optional[int] = None) -> OperationResult:
        """
        创建预订（前台）

        校验顺序：日期区间 -> 人数 -> 客人 -> 房间 -> 重叠
        """
        invalid = self._validate_stay(check_in_date, check_out_date, adults, children)
        if invalid:
            return invalid

        guest = self.db.query(User).filter(User.id == guest_id).first()
        if not guest:
            return OperationResult.fail("客人不存在", ErrorCode.NOT_FOUND)

        return self._reserve(room_id, guest, check_in_date, check_out_date,
                             adults, children, is_prepaid, created_by)

    def cancel_booking(self, booking_id: int, operator_id: Optional[int] = None) -> OperationResult:
        """
        取消预订

        已取消的预订再次取消视为成功；已入住/已退房的预订不能取消
        """
        booking = self.get_booking(booking_id)
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)

        if booking.status == BookingStatus.CANCELLED:
            return OperationResult.ok("预订已取消", value=booking)

        target = booking_state_machine.fire(booking.status, BookingTrigger.CANCEL)
        if target is None:
            return OperationResult.fail(
                f"状态为 {booking.status.value} 的预订不能取消",
                ErrorCode.INVALID_TRANSITION
            )

        booking.status = BookingStatus.parse(target)
        pending: List[Event] = []

        room = booking.room
        if not self.availability.has_active_booking_on(room.id, self._today(), exclude_booking_id=booking.id):
            self._set_room_status(room, RoomStatus.VACANT, operator_id, "booking cancelled", pending)

        self.key_service.revoke_for_booking(booking.id)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.confirmation_code} cancelled")
        self._publish_event(Event(
            event_type=EventType.BOOKING_CANCELLED,
            timestamp=datetime.now(),
            data=self._booking_event(booking, operator_id),
            source="booking_service"
        ))
        self._publish_all(pending)
        return OperationResult.ok("预订已取消", value=booking)

    def check_in(self, booking_id: int, operator_id: Optional[int] = None) -> OperationResult:
        """
        入住

        业务联动：
        1. 预订 Reserved -> CheckedIn，记录入住时间
        2. 房间置为 Occupied
        3. 签发数字钥匙
        """
        booking = self.get_booking(booking_id)
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)

        target = booking_state_machine.fire(booking.status, BookingTrigger.CHECK_IN)
        if target is None:
            message = ("该预订已入住" if booking.status == BookingStatus.CHECKED_IN
                       else f"状态为 {booking.status.value} 的预订不能入住")
            return OperationResult.fail(message, ErrorCode.INVALID_TRANSITION)

        booking.status = BookingStatus.parse(target)
        booking.check_in_time = self._now()
        pending: List[Event] = []
        self._set_room_status(booking.room, RoomStatus.OCCUPIED, operator_id, "check in", pending)

        key = self.key_service.issue_for_booking(booking, operator_id)
        self.db.commit()
        self.db.refresh(booking)
        self.db.refresh(key)

        logger.info(f"Booking {booking.confirmation_code} checked in, room {booking.room.room_number}")
        self._publish_event(Event(
            event_type=EventType.BOOKING_CHECKED_IN,
            timestamp=datetime.now(),
            data=self._booking_event(booking, operator_id),
            source="booking_service"
        ))
        self._publish_all(pending)
        self.key_service.publish_key_event(EventType.DIGITAL_KEY_ISSUED, key, operator_id)
        return OperationResult.ok("入住成功", value=booking, data={"digital_key": key})

    def check_out(self, booking_id: int, operator_id: Optional[int] = None) -> OperationResult:
        """
        退房

        业务联动：
        1. 预订 CheckedIn -> CheckedOut，记录退房时间
        2. 房间置为 Dirty
        3. 创建清洁任务
        4. 吊销数字钥匙
        5. 生成发票
        """
        booking = self.get_booking(booking_id)
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)

        target = booking_state_machine.fire(booking.status, BookingTrigger.CHECK_OUT)
        if target is None:
            return OperationResult.fail(
                f"状态为 {booking.status.value} 的预订不能退房",
                ErrorCode.INVALID_TRANSITION
            )

        booking.status = BookingStatus.parse(target)
        booking.check_out_time = self._now()
        pending: List[Event] = []
        self._set_room_status(booking.room, RoomStatus.DIRTY, operator_id, "check out", pending)

        task = self.task_service.build_checkout_task(booking, operator_id)
        revoked = self.key_service.revoke_for_booking(booking.id)
        invoice = self.invoice_service.build_for_booking(booking, operator_id)

        self.db.commit()
        self.db.refresh(booking)

        logger.info(
            f"Booking {booking.confirmation_code} checked out, "
            f"task {task.id}, invoice {invoice.invoice_number}, {revoked} key(s) revoked"
        )
        self._publish_event(Event(
            event_type=EventType.BOOKING_CHECKED_OUT,
            timestamp=datetime.now(),
            data=self._booking_event(booking, operator_id),
            source="booking_service"
        ))
        self._publish_all(pending)
        self.task_service.publish_task_event(EventType.TASK_CREATED, task, operator_id, trigger="checkout")
        self.invoice_service.publish_generated(invoice)
        return OperationResult.ok("退房成功", value=booking, data={"invoice": invoice, "task": task})

    # ============== 客人自助 ==============

    def create_guest_booking(self, guest_id: int, room_type_id: int, check_in_date: date,
                             check_out_date: date, adults: int = 1, children: int = 0,
                             is_prepaid: bool = False) -> OperationResult:
        """客人按房型预订：分配该房型第一间在所选日期空闲的启用房间"""
        invalid = self._validate_stay(check_in_date, check_out_date, adults, children)
        if invalid:
            return invalid

        guest = self.db.query(User).filter(User.id == guest_id).first()
        if not guest:
            return OperationResult.fail("客人不存在", ErrorCode.NOT_FOUND)

        room_type = self.db.query(RoomType).filter(RoomType.id == room_type_id).first()
        if not room_type:
            return OperationResult.fail("房型不存在", ErrorCode.NOT_FOUND)
        if adults + children > room_type.capacity:
            return OperationResult.fail(
                f"房型 {room_type.name} 最多入住 {room_type.capacity} 人",
                ErrorCode.INVALID_GUEST_COUNT
            )

        for room in self.availability.available_rooms(room_type_id, check_in_date, check_out_date):
            result = self._reserve(room.id, guest, check_in_date, check_out_date,
                                   adults, children, is_prepaid, guest.id)
            if result.error_code != ErrorCode.ROOM_UNAVAILABLE:
                return result
            # 并发下刚被占用，换下一间

        return OperationResult.fail(
            f"房型 {room_type.name} 在所选日期没有空房", ErrorCode.ROOM_UNAVAILABLE
        )

    def get_guest_bookings(self, guest_id: int) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.guest_id == guest_id
        ).order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    def _owned_booking(self, booking_id: int, guest_id: int) -> OperationResult:
        booking = self.get_booking(booking_id)
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)
        if booking.guest_id != guest_id:
            return OperationResult.fail("无权操作该预订", ErrorCode.FORBIDDEN)
        return OperationResult.ok("", value=booking)

    def get_booking_status(self, booking_id: int, guest_id: int) -> OperationResult:
        """客人查询自己的预订状态；他人的预订一律视为不存在"""
        booking = self.get_booking(booking_id)
        if not booking or booking.guest_id != guest_id:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)
        return OperationResult.ok(booking.status.value, value=booking)

    def guest_check_in(self, booking_id: int, guest_id: int) -> OperationResult:
        owned = self._owned_booking(booking_id, guest_id)
        if not owned:
            return owned
        return self.check_in(booking_id, operator_id=guest_id)

    def guest_check_out(self, booking_id: int, guest_id: int) -> OperationResult:
        owned = self._owned_booking(booking_id, guest_id)
        if not owned:
            return owned
        return self.check_out(booking_id, operator_id=guest_id)

    def lookup_booking(self, confirmation_code: str, email: str) -> OperationResult:
        """按确认码 + 邮箱查找预订，两者都匹配才返回"""
        code = (confirmation_code or "").strip().upper()
        mail = (email or "").strip().lower()
        if not code or not mail:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)

        booking = self.db.query(Booking).join(User, Booking.guest_id == User.id).filter(
            Booking.confirmation_code == code,
            User.email == mail
        ).first()
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)
        return OperationResult.ok("", value=booking)
