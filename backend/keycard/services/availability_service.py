"""
可用性服务 - 房间占用查询
日期区间一律按半开区间 [check_in, check_out) 处理，离店当天不占用
"""
from datetime import date, datetime, UTC
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from keycard.models.ontology import Booking, Room, RoomStatus, ACTIVE_BOOKING_STATUSES

logger = logging.getLogger(__name__)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """两个半开区间是否相交；首尾相接（a_end == b_start）不算重叠"""
    return a_start < b_end and b_start < a_end


class AvailabilityService:
    """可用性服务"""

    def __init__(self, db: Session):
        self.db = db

    def lock_room(self, room_id: int) -> Optional[Room]:
        """
        锁定房间行，使同一房间的并发预订串行化

        支持行锁的数据库由 SELECT ... FOR UPDATE 加锁；SQLite 忽略 FOR UPDATE，
        这里额外写一次房间行并 flush，让当前事务提前拿到数据库写锁，
        其他写事务在 busy_timeout 内等待。
        """
        room = self.db.query(Room).filter(Room.id == room_id).with_for_update().first()
        if room is None:
            return None
        room.updated_at = datetime.now(UTC)
        self.db.flush()
        return room

    def active_bookings_for_room(self, room_id: int,
                                 exclude_booking_id: Optional[int] = None) -> List[Booking]:
        query = self.db.query(Booking).filter(
            Booking.room_id == room_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES)
        )
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    def find_conflicts(self, room_id: int, check_in: date, check_out: date,
                       exclude_booking_id: Optional[int] = None) -> List[Booking]:
        """找出与给定区间重叠的有效预订（Reserved / CheckedIn）"""
        return [
            b for b in self.active_bookings_for_room(room_id, exclude_booking_id)
            if ranges_overlap(b.check_in_date, b.check_out_date, check_in, check_out)
        ]

    def is_room_available(self, room_id: int, check_in: date, check_out: date,
                          exclude_booking_id: Optional[int] = None) -> bool:
        return not self.find_conflicts(room_id, check_in, check_out, exclude_booking_id)

    def available_rooms(self, room_type_id: int, check_in: date, check_out: date) -> List[Room]:
        """某房型在日期区间内空闲的启用房间（不含停用维修，按房间号排序）"""
        rooms = self.db.query(Room).filter(
            Room.room_type_id == room_type_id,
            Room.is_active == True,
            Room.status != RoomStatus.OUT_OF_SERVICE
        ).order_by(Room.room_number).all()
        return [r for r in rooms if self.is_room_available(r.id, check_in, check_out)]

    def has_active_booking_on(self, room_id: int, day: date,
                              exclude_booking_id: Optional[int] = None) -> bool:
        """是否有有效预订覆盖某一天"""
        return any(b.covers(day) for b in self.active_bookings_for_room(room_id, exclude_booking_id))
