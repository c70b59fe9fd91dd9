"""
预订管理路由（前台 / 管理员）
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.ontology import User
from keycard.models.schemas import BookingCreate, BookingResponse, InvoiceResponse
from keycard.services.booking_service import BookingService
from keycard.security.auth import require_staff
from keycard.routers.common import raise_for_result

router = APIRouter(prefix="/bookings", tags=["预订管理"])


def _respond(service: BookingService, result) -> BookingResponse:
    return BookingResponse(**service.get_booking_detail(result.value))


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """创建预订"""
    service = BookingService(db)
    result = raise_for_result(service.create_booking(**data.model_dump(), created_by=current_user.id))
    return _respond(service, result)


@router.get("", response_model=List[BookingResponse])
def list_bookings(
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    status: Optional[str] = None,
    guest_name: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """获取预订列表（status 大小写不敏感）"""
    service = BookingService(db)
    result = raise_for_result(service.list_bookings(from_date, to_date, status, guest_name))
    return [BookingResponse(**service.get_booking_detail(b)) for b in result.value]


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """获取预订详情"""
    service = BookingService(db)
    booking = service.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    return BookingResponse(**service.get_booking_detail(booking))


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """取消预订"""
    service = BookingService(db)
    return _respond(service, raise_for_result(service.cancel_booking(booking_id, current_user.id)))


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
def check_in(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """办理入住（签发数字钥匙）"""
    service = BookingService(db)
    return _respond(service, raise_for_result(service.check_in(booking_id, current_user.id)))


@router.post("/{booking_id}/check-out")
def check_out(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """办理退房（生成发票、创建清洁任务）"""
    service = BookingService(db)
    result = raise_for_result(service.check_out(booking_id, current_user.id))
    return {
        "message": result.message,
        "booking": _respond(service, result),
        "invoice": InvoiceResponse.model_validate(result.data["invoice"]),
        "task_id": result.data["task"].id,
    }
