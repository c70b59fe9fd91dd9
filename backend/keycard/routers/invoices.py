"""
发票路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.ontology import User
from keycard.models.schemas import InvoiceResponse
from keycard.services.invoice_service import InvoiceService
from keycard.security.auth import require_staff
from keycard.routers.common import raise_for_result

router = APIRouter(prefix="/invoices", tags=["发票"])


@router.get("/bookings/{booking_id}", response_model=InvoiceResponse)
def get_invoice(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    invoice = InvoiceService(db).get_invoice(booking_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="发票不存在")
    return InvoiceResponse.model_validate(invoice)


@router.post("/bookings/{booking_id}", response_model=InvoiceResponse)
def generate_invoice(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """生成发票（已存在则直接返回）"""
    result = raise_for_result(InvoiceService(db).generate_invoice(booking_id, current_user.id))
    return InvoiceResponse.model_validate(result.value)
