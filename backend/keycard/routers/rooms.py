"""
房间管理路由
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.ontology import User, RoomStatus
from keycard.models.schemas import (
    RoomResponse, RoomTypeResponse, RoomStatusUpdate, RoomOptionsResponse
)
from keycard.services.room_service import RoomService
from keycard.security.auth import require_staff, require_housekeeping_or_staff

router = APIRouter(prefix="/rooms", tags=["房间管理"])


@router.get("/options", response_model=RoomOptionsResponse)
def get_room_options(
    check_in: date,
    check_out: date,
    guests: int = Query(1, ge=1),
    rooms: int = Query(1, ge=1),
    currency: str = Query("USD", max_length=3),
    db: Session = Depends(get_db)
):
    """查询可预订的房型方案（无需登录）"""
    service = RoomService(db)
    try:
        return RoomOptionsResponse(**service.get_room_options(check_in, check_out, guests, rooms, currency))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/types", response_model=List[RoomTypeResponse])
def list_room_types(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    service = RoomService(db)
    return [RoomTypeResponse(**service.get_room_type_detail(rt)) for rt in service.get_room_types()]


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    floor: Optional[int] = None,
    room_type_id: Optional[int] = None,
    status: Optional[RoomStatus] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """获取房间列表"""
    service = RoomService(db)
    return [RoomResponse(**service.get_room_detail(r))
            for r in service.get_rooms(floor, room_type_id, status)]


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    service = RoomService(db)
    room = service.get_room(room_id)
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    return RoomResponse(**service.get_room_detail(room))


@router.put("/{room_id}/status", response_model=RoomResponse)
def update_room_status(
    room_id: int,
    data: RoomStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    """更新房间状态（未知状态值由请求校验拒绝）"""
    service = RoomService(db)
    if not service.get_room(room_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="房间不存在")
    try:
        room = service.update_room_status(room_id, data.status, current_user.id, reason="manual")
        return RoomResponse(**service.get_room_detail(room))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
