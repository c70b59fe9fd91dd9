"""
领域事件定义 (Domain Events)
预订生命周期、房态变更和清洁任务的事件
"""
from enum import Enum
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any


class EventType(str, Enum):
    """事件类型枚举"""
    # 预订相关
    BOOKING_CREATED = "booking.created"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_CHECKED_IN = "booking.checked_in"
    BOOKING_CHECKED_OUT = "booking.checked_out"

    # 房间相关
    ROOM_STATUS_CHANGED = "room.status_changed"

    # 数字钥匙
    DIGITAL_KEY_ISSUED = "digital_key.issued"
    DIGITAL_KEY_REVOKED = "digital_key.revoked"

    # 任务相关
    TASK_CREATED = "task.created"
    TASK_COMPLETED = "task.completed"

    # 发票
    INVOICE_GENERATED = "invoice.generated"


@dataclass
class BaseEventData:
    """事件数据基类"""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        result = asdict(self)
        # 处理 datetime 序列化
        for key, value in result.items():
            if isinstance(value, datetime):
                result[key] = value.isoformat()
        return result


@dataclass
class BookingEventData(BaseEventData):
    """预订生命周期事件数据"""
    booking_id: int = 0
    confirmation_code: str = ""
    room_id: int = 0
    room_number: str = ""
    guest_id: int = 0
    guest_name: str = ""
    check_in_date: str = ""   # date as string
    check_out_date: str = ""  # date as string
    status: str = ""
    operator_id: Optional[int] = None


@dataclass
class RoomStatusChangedData(BaseEventData):
    """房间状态变更事件数据"""
    room_id: int = 0
    room_number: str = ""
    old_status: str = ""
    new_status: str = ""
    changed_by: Optional[int] = None
    reason: str = ""


@dataclass
class DigitalKeyEventData(BaseEventData):
    """数字钥匙事件数据"""
    key_id: int = 0
    booking_id: int = 0
    expires_at: Optional[datetime] = None
    operator_id: Optional[int] = None


@dataclass
class TaskEventData(BaseEventData):
    """清洁任务事件数据"""
    task_id: int = 0
    task_name: str = ""
    room_id: int = 0
    room_number: str = ""
    status: str = ""
    operator_id: Optional[int] = None
    trigger: str = "manual"  # manual / checkout


@dataclass
class InvoiceGeneratedData(BaseEventData):
    """发票生成事件数据"""
    invoice_id: int = 0
    invoice_number: str = ""
    booking_id: int = 0
    total_amount: float = 0.0
