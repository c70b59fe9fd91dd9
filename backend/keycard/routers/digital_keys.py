"""
数字钥匙路由
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.ontology import User
from keycard.models.schemas import DigitalKeyResponse, DigitalKeyVerify
from keycard.services.digital_key_service import DigitalKeyService
from keycard.security.auth import require_staff
from keycard.routers.common import raise_for_result

router = APIRouter(prefix="/digital-keys", tags=["数字钥匙"])


@router.get("/bookings/{booking_id}", response_model=DigitalKeyResponse)
def get_key(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """获取预订当前有效的钥匙"""
    key = DigitalKeyService(db).get_key(booking_id)
    if not key:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="该预订没有有效的数字钥匙")
    return DigitalKeyResponse.model_validate(key)


@router.post("/bookings/{booking_id}/issue", response_model=DigitalKeyResponse)
def issue_key(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """重新签发钥匙（旧钥匙自动吊销）"""
    result = raise_for_result(DigitalKeyService(db).issue_key(booking_id, current_user.id))
    return DigitalKeyResponse.model_validate(result.value)


@router.post("/bookings/{booking_id}/revoke")
def revoke_key(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    revoked = DigitalKeyService(db).revoke_key(booking_id, current_user.id)
    return {"revoked": revoked}


@router.post("/verify")
def verify_key(data: DigitalKeyVerify, db: Session = Depends(get_db)):
    """门锁校验令牌（无需登录）"""
    return {"valid": DigitalKeyService(db).verify(data.token)}
