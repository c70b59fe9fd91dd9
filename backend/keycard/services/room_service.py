"""
房间服务 - 本体操作层
管理 Room 和 RoomType 对象，以及按日期的房型可选方案查询
房间状态变更时发布事件
"""
from typing import List, Optional, Callable
from datetime import date, datetime
from decimal import Decimal
import logging
import math
from sqlalchemy.orm import Session
from keycard.models.ontology import Room, RoomType, RoomStatus
from keycard.services.availability_service import AvailabilityService
from keycard.services.event_bus import event_bus, Event
from keycard.models.events import EventType, RoomStatusChangedData

logger = logging.getLogger(__name__)


class RoomService:
    """房间服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish
        self.availability = AvailabilityService(db)

    # ============== 房型操作 ==============

    def get_room_types(self) -> List[RoomType]:
        return self.db.query(RoomType).order_by(RoomType.base_rate, RoomType.id).all()

    def get_room_type(self, room_type_id: int) -> Optional[RoomType]:
        return self.db.query(RoomType).filter(RoomType.id == room_type_id).first()

    def count_active_rooms(self, room_type_id: int) -> int:
        return self.db.query(Room).filter(
            Room.room_type_id == room_type_id,
            Room.is_active == True
        ).count()

    def get_room_type_detail(self, room_type: RoomType) -> dict:
        """房型及启用房间数量"""
        return {
            "id": room_type.id,
            "name": room_type.name,
            "description": room_type.description,
            "base_rate": room_type.base_rate,
            "capacity": room_type.capacity,
            "amenities": room_type.amenity_list,
            "room_count": self.count_active_rooms(room_type.id),
        }

    # ============== 房间操作 ==============

    def get_rooms(self, floor: Optional[int] = None, room_type_id: Optional[int] = None,
                  status: Optional[RoomStatus] = None, is_active: Optional[bool] = True) -> List[Room]:
        """获取房间列表"""
        query = self.db.query(Room)

        if floor is not None:
            query = query.filter(Room.floor == floor)
        if room_type_id is not None:
            query = query.filter(Room.room_type_id == room_type_id)
        if status is not None:
            query = query.filter(Room.status == status)
        if is_active is not None:
            query = query.filter(Room.is_active == is_active)

        return query.order_by(Room.floor, Room.room_number).all()

    def get_room(self, room_id: int) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_room_detail(self, room: Room) -> dict:
        return {
            "id": room.id,
            "room_number": room.room_number,
            "floor": room.floor,
            "room_type_id": room.room_type_id,
            "room_type_name": room.room_type.name if room.room_type else None,
            "status": room.status,
            "is_active": room.is_active,
        }

    def update_room_status(self, room_id: int, status: RoomStatus,
                           changed_by: int = None, reason: str = "") -> Room:
        """更新房间状态"""
        room = self.get_room(room_id)
        if not room:
            raise ValueError("房间不存在")

        # 入住中的房间不能手动改状态
        if room.status == RoomStatus.OCCUPIED and status != RoomStatus.OCCUPIED:
            raise ValueError("入住中的房间不能手动更改状态，请通过退房操作")

        old_status = room.status
        room.status = status
        room_number = room.room_number

        self.db.commit()
        self.db.refresh(room)

        if old_status != status:
            logger.info(f"Room {room_number} status {old_status.value} -> {status.value}")
            self._publish_event(Event(
                event_type=EventType.ROOM_STATUS_CHANGED,
                timestamp=datetime.now(),
                data=RoomStatusChangedData(
                    room_id=room_id,
                    room_number=room_number,
                    old_status=old_status.value,
                    new_status=status.value,
                    changed_by=changed_by,
                    reason=reason
                ).to_dict(),
                source="room_service"
            ))

        return room

    # ============== 可选方案查询 ==============

    def get_room_options(self, check_in: date, check_out: date, guests: int = 1,
                         rooms: int = 1, currency: str = "USD") -> dict:
        """
        查询可预订的房型方案

        每间房人数 = ceil(guests / rooms)；只返回容量足够、
        且在所选日期至少还有 rooms 间空房的房型
        """
        nights = (check_out - check_in).days
        if nights <= 0:
            raise ValueError("离店日期必须晚于入住日期")
        if guests < 1 or rooms < 1:
            raise ValueError("人数和房间数必须大于 0")

        guests_per_room = math.ceil(guests / rooms)
        options = []
        for room_type in self.get_room_types():
            if (room_type.capacity or 0) < guests_per_room:
                continue
            free_rooms = self.availability.available_rooms(room_type.id, check_in, check_out)
            if len(free_rooms) < rooms:
                continue
            rate = Decimal(str(room_type.base_rate))
            options.append({
                "room_type_id": room_type.id,
                "name": room_type.name,
                "description": room_type.description,
                "capacity": room_type.capacity,
                "nightly_rate": rate,
                "total_price": rate * nights * rooms,
                "available_rooms": len(free_rooms),
                "amenities": room_type.amenity_list,
            })

        return {
            "check_in": check_in,
            "check_out": check_out,
            "nights": nights,
            "guests": guests,
            "rooms": rooms,
            "currency": currency.upper(),
            "options": options,
        }
