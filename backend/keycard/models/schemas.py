"""
Pydantic 模式定义
用于 API 请求/响应验证
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, ConfigDict
from keycard.models.ontology import RoomStatus, BookingStatus, TaskStatus, UserRole


# ============== 用户 / 认证 Schemas ==============

class LoginRequest(BaseModel):
    username: str  # 用户名或邮箱
    password: str


class GuestSignupRequest(BaseModel):
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., max_length=50)
    last_name: str = Field(default="", max_length=50)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("邮箱格式不正确")
        return v


class UserCreate(GuestSignupRequest):
    """管理员创建用户"""
    username: str = Field(..., max_length=100)
    role: UserRole


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ============== 房型 / 房间 Schemas ==============

class RoomTypeResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    base_rate: Decimal
    capacity: int
    amenities: List[str] = []
    room_count: int = 0


class RoomResponse(BaseModel):
    id: int
    room_number: str
    floor: int
    room_type_id: int
    room_type_name: Optional[str] = None
    status: RoomStatus
    is_active: bool
    model_config = ConfigDict(from_attributes=True)


class RoomStatusUpdate(BaseModel):
    status: RoomStatus


class RoomOptionsQuery(BaseModel):
    check_in: date
    check_out: date
    guests: int = Field(default=1, ge=1)
    rooms: int = Field(default=1, ge=1)
    currency: str = Field(default="USD", max_length=3)


class RoomOption(BaseModel):
    room_type_id: int
    name: str
    description: Optional[str] = None
    capacity: int
    nightly_rate: Decimal
    total_price: Decimal
    available_rooms: int
    amenities: List[str] = []


class RoomOptionsResponse(BaseModel):
    check_in: date
    check_out: date
    nights: int
    guests: int
    rooms: int
    currency: str
    options: List[RoomOption]


# ============== 预订 Schemas ==============

class BookingCreate(BaseModel):
    """前台创建预订"""
    room_id: int
    guest_id: int
    check_in_date: date
    check_out_date: date
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    is_prepaid: bool = False


class GuestBookingCreate(BaseModel):
    """客人按房型自助预订"""
    room_type_id: int
    check_in_date: date
    check_out_date: date
    adults: int = Field(default=1, ge=0)
    children: int = Field(default=0, ge=0)
    is_prepaid: bool = False


class BookingLookup(BaseModel):
    confirmation_code: str
    email: str


class DigitalKeyResponse(BaseModel):
    id: int
    token: str
    issued_at: datetime
    expires_at: datetime
    is_revoked: bool
    booking_id: int
    model_config = ConfigDict(from_attributes=True)


class DigitalKeyVerify(BaseModel):
    token: str


class BookingResponse(BaseModel):
    id: int
    confirmation_code: str
    room_id: int
    room_number: str
    guest_id: int
    guest_name: str
    check_in_date: date
    check_out_date: date
    nights: int
    adults: int
    children: int
    total_amount: Decimal
    extra_fees: Decimal
    is_prepaid: bool
    status: BookingStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    created_at: datetime
    digital_key: Optional[DigitalKeyResponse] = None


class BookingStatusResponse(BaseModel):
    booking_id: int
    status: BookingStatus


# ============== 发票 Schemas ==============

class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    issued_at: datetime
    subtotal: Decimal
    tax_amount: Decimal
    extra_fees: Decimal
    total_amount: Decimal
    booking_id: int
    model_config = ConfigDict(from_attributes=True)


# ============== 清洁任务 Schemas ==============

class TaskCreate(BaseModel):
    task_name: str = Field(..., max_length=200)
    room_id: int
    notes: Optional[str] = None
    assignee_id: Optional[int] = None


class TaskUpdate(BaseModel):
    task_name: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    assignee_id: Optional[int] = None
    status: Optional[str] = None  # 大小写不敏感，如 "inprogress" / "InProgress"


class TaskResponse(BaseModel):
    id: int
    task_name: str
    notes: Optional[str]
    status: TaskStatus
    room_id: int
    room_number: Optional[str]
    assignee_id: Optional[int]
    assignee_name: Optional[str]
    created_at: datetime
    completed_at: Optional[datetime]
