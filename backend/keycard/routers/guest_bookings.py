"""
客人自助预订路由
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.ontology import User
from keycard.models.schemas import (
    GuestBookingCreate, BookingLookup, BookingResponse, BookingStatusResponse, InvoiceResponse
)
from keycard.services.booking_service import BookingService
from keycard.services.invoice_service import InvoiceService
from keycard.security.auth import require_guest
from keycard.routers.common import raise_for_result

router = APIRouter(prefix="/guest/bookings", tags=["客人自助"])


@router.post("/lookup", response_model=BookingResponse)
def lookup_booking(data: BookingLookup, db: Session = Depends(get_db)):
    """按确认码 + 邮箱查找预订（无需登录）"""
    service = BookingService(db)
    result = raise_for_result(service.lookup_booking(data.confirmation_code, data.email))
    return BookingResponse(**service.get_booking_detail(result.value))


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_guest_booking(
    data: GuestBookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_guest)
):
    """按房型预订"""
    service = BookingService(db)
    result = raise_for_result(service.create_guest_booking(current_user.id, **data.model_dump()))
    return BookingResponse(**service.get_booking_detail(result.value))


@router.get("", response_model=List[BookingResponse])
def my_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_guest)
):
    """我的预订"""
    service = BookingService(db)
    return [BookingResponse(**service.get_booking_detail(b))
            for b in service.get_guest_bookings(current_user.id)]


@router.get("/{booking_id}/status", response_model=BookingStatusResponse)
def booking_status(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_guest)
):
    service = BookingService(db)
    result = raise_for_result(service.get_booking_status(booking_id, current_user.id))
    return BookingStatusResponse(booking_id=result.value.id, status=result.value.status)


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
def guest_check_in(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_guest)
):
    """自助入住，返回带数字钥匙的预订"""
    service = BookingService(db)
    result = raise_for_result(service.guest_check_in(booking_id, current_user.id))
    return BookingResponse(**service.get_booking_detail(result.value))


@router.post("/{booking_id}/check-out")
def guest_check_out(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_guest)
):
    """自助退房"""
    service = BookingService(db)
    result = raise_for_result(service.guest_check_out(booking_id, current_user.id))
    return {
        "message": result.message,
        "booking": BookingResponse(**service.get_booking_detail(result.value)),
        "invoice": InvoiceResponse.model_validate(result.data["invoice"]),
    }


@router.get("/{booking_id}/invoice", response_model=InvoiceResponse)
def my_invoice(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_guest)
):
    """查看自己预订的发票"""
    booking = BookingService(db).get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="预订不存在")
    if booking.guest_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="无权查看该发票")

    invoice = InvoiceService(db).get_invoice(booking_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="发票不存在")
    return InvoiceResponse.model_validate(invoice)
