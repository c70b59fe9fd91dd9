"""
发票服务 - 本体操作层
退房时自动生成；同一预订只生成一次
"""
import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from sqlalchemy.orm import Session

from keycard.config import settings
from keycard.models.ontology import Booking, Invoice
from keycard.models.events import EventType, InvoiceGeneratedData
from keycard.services.event_bus import event_bus, Event
from keycard_core.result import ErrorCode, OperationResult

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def calculate_invoice_amounts(subtotal, extra_fees=0, tax_rate=None) -> dict:
    """
    计算发票金额

    税额 = round(房费 × 税率, 2)，应付 = 房费 + 税额 + 杂费
    """
    rate = Decimal(str(settings.INVOICE_TAX_RATE if tax_rate is None else tax_rate))
    subtotal = Decimal(str(subtotal or 0)).quantize(CENT)
    fees = Decimal(str(extra_fees or 0)).quantize(CENT)
    tax = (subtotal * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    return {
        "subtotal": subtotal,
        "tax_amount": tax,
        "extra_fees": fees,
        "total_amount": subtotal + tax + fees,
    }


class InvoiceService:
    """发票服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 clock: Callable[[], datetime] = None):
        self.db = db
        self._publish_event = event_publisher or event_bus.publish
        self._now = clock or datetime.now

    def _generate_invoice_number(self, issued_at: datetime) -> str:
        """发票号：INV-YYYYMMDD-####，按当天已开票数递增"""
        day = issued_at.strftime("%Y%m%d")
        prefix = f"INV-{day}-"
        seq = self.db.query(Invoice).filter(Invoice.invoice_number.like(f"{prefix}%")).count() + 1
        number = f"{prefix}{str(seq).zfill(4)}"
        while self.db.query(Invoice).filter(Invoice.invoice_number == number).first():
            seq += 1
            number = f"{prefix}{str(seq).zfill(4)}"
        return number

    def get_invoice(self, booking_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(Invoice.booking_id == booking_id).first()

    def build_for_booking(self, booking: Booking, operator_id: Optional[int] = None) -> Invoice:
        """
        在当前事务内为预订生成发票（不提交）

        已存在的发票原样返回
        """
        existing = self.get_invoice(booking.id)
        if existing:
            return existing

        issued_at = self._now()
        amounts = calculate_invoice_amounts(booking.total_amount, booking.extra_fees)
        invoice = Invoice(
            invoice_number=self._generate_invoice_number(issued_at),
            issued_at=issued_at,
            booking_id=booking.id,
            created_by=operator_id,
            **amounts
        )
        self.db.add(invoice)
        self.db.flush()
        logger.info(f"Invoice {invoice.invoice_number} generated for booking {booking.id}")
        return invoice

    def publish_generated(self, invoice: Invoice) -> None:
        self._publish_event(Event(
            event_type=EventType.INVOICE_GENERATED,
            timestamp=datetime.now(),
            data=InvoiceGeneratedData(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                booking_id=invoice.booking_id,
                total_amount=float(invoice.total_amount)
            ).to_dict(),
            source="invoice_service"
        ))

    def generate_invoice(self, booking_id: int, operator_id: Optional[int] = None) -> OperationResult:
        """生成发票（幂等）"""
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            return OperationResult.fail("预订不存在", ErrorCode.NOT_FOUND)

        existing = self.get_invoice(booking_id)
        if existing:
            return OperationResult.ok("发票已存在", value=existing, data={"created": False})

        invoice = self.build_for_booking(booking, operator_id)
        self.db.commit()
        self.db.refresh(invoice)
        self.publish_generated(invoice)
        return OperationResult.ok("发票已生成", value=invoice, data={"created": True})
