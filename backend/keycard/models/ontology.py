"""
本体对象定义 (Ontology Objects)
酒店运营的核心实体：房型、房间、用户、预订、数字钥匙、发票、清洁任务
"""
import json
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum
from typing import List
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Index,
    ForeignKey, Text, Enum as SQLEnum, Boolean, Numeric
)
from sqlalchemy.orm import relationship
from keycard.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ============== 枚举定义 ==============

class ParsableEnum(str, Enum):
    """支持大小写不敏感解析的字符串枚举"""

    @staticmethod
    def _normalize(value: str) -> str:
        return value.replace("_", "").replace("-", "").replace(" ", "").lower()

    @classmethod
    def parse(cls, value):
        """
        将外部字符串解析为枚举成员

        同时接受 value（CheckedIn）、name（CHECKED_IN）和其他大小写/分隔写法（checked_in）；
        未知值抛出 ValueError，不做静默回退。
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"无效的{cls.__name__}: {value!r}")
        wanted = cls._normalize(value.strip())
        for member in cls:
            if wanted in (cls._normalize(member.value), cls._normalize(member.name)):
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ValueError(f"无效的{cls.__name__}: {value!r}（可选值: {allowed}）")


class UserRole(ParsableEnum):
    """用户角色"""
    ADMIN = "Admin"                # 管理员
    FRONT_DESK = "FrontDesk"       # 前台
    HOUSEKEEPING = "HouseKeeping"  # 客房清洁
    GUEST = "Guest"                # 客人


class RoomStatus(ParsableEnum):
    """房间状态枚举（房间自身的运营状态，与预订状态无关）"""
    VACANT = "Vacant"              # 空闲
    OCCUPIED = "Occupied"          # 入住中
    DIRTY = "Dirty"                # 待清洁
    CLEANING = "Cleaning"          # 清洁中
    INSPECTED = "Inspected"        # 已查房
    OUT_OF_SERVICE = "OutOfService"  # 停用维修


class BookingStatus(ParsableEnum):
    """预订状态枚举"""
    RESERVED = "Reserved"      # 已预订
    CHECKED_IN = "CheckedIn"   # 已入住
    CHECKED_OUT = "CheckedOut"  # 已退房
    CANCELLED = "Cancelled"    # 已取消


class TaskStatus(ParsableEnum):
    """清洁任务状态"""
    PENDING = "Pending"          # 待处理
    IN_PROGRESS = "InProgress"   # 进行中
    COMPLETED = "Completed"      # 已完成
    CANCELLED = "Cancelled"      # 已撤销


# 计入房态占用的预订状态
ACTIVE_BOOKING_STATUSES = (BookingStatus.RESERVED, BookingStatus.CHECKED_IN)

STAFF_ROLES = (UserRole.ADMIN, UserRole.FRONT_DESK)


# ============== 本体对象定义 ==============

class User(Base):
    """
    用户对象
    员工（管理员/前台/清洁）与客人共用，通过 role 区分
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False)  # 登录账号（客人为邮箱）
    email = Column(String(100), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), default="")
    last_name = Column(String(50), default="")
    full_name = Column(String(100), nullable=False)
    phone = Column(String(20))
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.GUEST)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # 链接
    bookings = relationship("Booking", foreign_keys="Booking.guest_id", back_populates="guest")
    assigned_tasks = relationship(
        "HousekeepingTask", foreign_keys="HousekeepingTask.assignee_id", back_populates="assignee"
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class RoomType(Base):
    """
    房型对象
    base_rate 为每晚房价
    """
    __tablename__ = "room_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)  # 房型名称
    description = Column(Text)                               # 描述
    base_rate = Column(Numeric(10, 2), nullable=False)       # 每晚房价
    capacity = Column(Integer, default=2)                    # 最大入住人数
    amenities = Column(Text)                                 # 设施列表(JSON)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # 链接：一个房型对应多个房间
    rooms = relationship("Room", back_populates="room_type")

    @property
    def amenity_list(self) -> List[str]:
        """解析设施 JSON"""
        if not self.amenities:
            return []
        try:
            value = json.loads(self.amenities)
        except (TypeError, ValueError):
            return [a.strip() for a in self.amenities.split(",") if a.strip()]
        return [str(a) for a in value] if isinstance(value, list) else []


class Room(Base):
    """
    房间对象
    status 是房间自身的运营状态，入住/退房/取消时作为副作用更新
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String(10), unique=True, nullable=False)  # 房间号
    floor = Column(Integer, nullable=False)                        # 楼层
    room_type_id = Column(Integer, ForeignKey("room_types.id"), nullable=False)
    status = Column(SQLEnum(RoomStatus), default=RoomStatus.VACANT)
    is_active = Column(Boolean, default=True)                      # 是否启用
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # 链接
    room_type = relationship("RoomType", back_populates="rooms")
    bookings = relationship("Booking", back_populates="room")
    tasks = relationship("HousekeepingTask", back_populates="room")


class Booking(Base):
    """
    预订对象 - 生命周期的聚合根
    Reserved -> CheckedIn -> CheckedOut，或 Reserved -> Cancelled
    日期区间为半开区间 [check_in_date, check_out_date)
    """
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_room_status", "room_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    confirmation_code = Column(String(20), unique=True, nullable=False)  # 确认码
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    check_in_date = Column(Date, nullable=False)         # 入住日期
    check_out_date = Column(Date, nullable=False)        # 离店日期（当天不占用）
    adults = Column(Integer, default=1)                  # 成人数
    children = Column(Integer, default=0)                # 儿童数
    total_amount = Column(Numeric(10, 2), default=0)     # 房费总额
    extra_fees = Column(Numeric(10, 2), default=0)       # 杂费（迷你吧、客房服务等）
    is_prepaid = Column(Boolean, default=False)          # 是否预付
    status = Column(SQLEnum(BookingStatus), default=BookingStatus.RESERVED, nullable=False)
    check_in_time = Column(DateTime)                     # 实际入住时间
    check_out_time = Column(DateTime)                    # 实际退房时间
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # 链接
    room = relationship("Room", back_populates="bookings")
    guest = relationship("User", foreign_keys=[guest_id], back_populates="bookings")
    creator = relationship("User", foreign_keys=[created_by])
    digital_keys = relationship("DigitalKey", back_populates="booking", order_by="DigitalKey.id")
    invoice = relationship("Invoice", back_populates="booking", uselist=False)

    @property
    def nights(self) -> int:
        """入住晚数（至少 1 晚）"""
        return max(1, (self.check_out_date - self.check_in_date).days)

    @property
    def is_active(self) -> bool:
        """是否计入房态占用"""
        return self.status in ACTIVE_BOOKING_STATUSES

    def covers(self, day: date) -> bool:
        """半开区间是否包含某一天"""
        return self.check_in_date <= day < self.check_out_date


class DigitalKey(Base):
    """
    数字钥匙对象
    仅在预订处于 CheckedIn 时签发，退房时吊销
    """
    __tablename__ = "digital_keys"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(64), unique=True, nullable=False)  # 随机令牌(Base64)
    issued_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_revoked = Column(Boolean, default=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # 链接
    booking = relationship("Booking", back_populates="digital_keys")

    def is_valid_at(self, moment: datetime) -> bool:
        return not self.is_revoked and moment < self.expires_at


class Invoice(Base):
    """
    发票对象
    每个预订最多一张，退房时自动生成
    """
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(20), unique=True, nullable=False)  # INV-YYYYMMDD-####
    issued_at = Column(DateTime, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)      # 房费
    tax_amount = Column(Numeric(10, 2), nullable=False)    # 税额
    extra_fees = Column(Numeric(10, 2), default=0)         # 杂费
    total_amount = Column(Numeric(10, 2), nullable=False)  # 应付总额
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=_utcnow)

    # 链接
    booking = relationship("Booking", back_populates="invoice")


class HousekeepingTask(Base):
    """
    清洁任务对象
    退房时自动创建，也可由员工手动创建；删除即状态置为 Cancelled
    """
    __tablename__ = "housekeeping_tasks"

    id = Column(Integer, primary_key=True, index=True)
    task_name = Column(String(200), nullable=False)
    notes = Column(Text)
    status = Column(SQLEnum(TaskStatus), default=TaskStatus.PENDING, nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime)
    created_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # 链接
    room = relationship("Room", back_populates="tasks")
    assignee = relationship("User", foreign_keys=[assignee_id], back_populates="assigned_tasks")
    creator = relationship("User", foreign_keys=[created_by])
