"""
清洁任务路由
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from keycard.database import get_db
from keycard.models.ontology import User, TaskStatus
from keycard.models.schemas import TaskCreate, TaskUpdate, TaskResponse
from keycard.services.task_service import TaskService
from keycard.security.auth import require_housekeeping_or_staff

router = APIRouter(prefix="/tasks", tags=["清洁任务"])


def _get_or_404(service: TaskService, task_id: int):
    task = service.get_task(task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="任务不存在")
    return task


@router.get("", response_model=List[TaskResponse])
def list_tasks(
    status: Optional[str] = None,
    room_id: Optional[int] = None,
    assignee_id: Optional[int] = None,
    include_cancelled: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    """获取任务列表（默认不含已撤销任务）"""
    service = TaskService(db)
    try:
        task_status = TaskStatus.parse(status) if status else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    tasks = service.get_tasks(task_status, room_id, assignee_id, include_cancelled)
    return [TaskResponse(**service.get_task_detail(t.id)) for t in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    service = TaskService(db)
    _get_or_404(service, task_id)
    return TaskResponse(**service.get_task_detail(task_id))


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    data: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    """创建任务"""
    service = TaskService(db)
    try:
        task = service.create_task(data, current_user.id)
        return TaskResponse(**service.get_task_detail(task.id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    data: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    """更新任务（状态按任务状态机校验）"""
    service = TaskService(db)
    _get_or_404(service, task_id)
    try:
        task = service.update_task(task_id, data, current_user.id)
        return TaskResponse(**service.get_task_detail(task.id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{task_id}/complete", response_model=TaskResponse)
def complete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    """完成任务"""
    service = TaskService(db)
    _get_or_404(service, task_id)
    try:
        task = service.complete_task(task_id, current_user.id)
        return TaskResponse(**service.get_task_detail(task.id))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_housekeeping_or_staff)
):
    """删除任务（状态置为 Cancelled）"""
    service = TaskService(db)
    _get_or_404(service, task_id)
    try:
        service.delete_task(task_id)
        return {"message": "任务已删除"}
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
