"""
清洁任务服务 - 本体操作层
任务完成发布事件，由事件处理器把房间放回空闲
删除任务即把状态置为 Cancelled
"""
from typing import List, Optional, Callable
from datetime import datetime
import logging
from sqlalchemy.orm import Session
from keycard.models.ontology import (
    HousekeepingTask, TaskStatus, Room, RoomStatus, User, UserRole, Booking
)
from keycard.models.schemas import TaskCreate, TaskUpdate
from keycard.models.state_machines import task_state_machine
from keycard.services.event_bus import event_bus, Event
from keycard.models.events import EventType, TaskEventData

logger = logging.getLogger(__name__)

# 可以被指派清洁任务的角色
ASSIGNABLE_ROLES = (UserRole.HOUSEKEEPING, UserRole.ADMIN)


class TaskService:
    """清洁任务服务"""

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None):
        self.db = db
        # 支持依赖注入事件发布器，便于测试
        self._publish_event = event_publisher or event_bus.publish

    def get_tasks(self, status: Optional[TaskStatus] = None,
                  room_id: Optional[int] = None,
                  assignee_id: Optional[int] = None,
                  include_cancelled: bool = False) -> List[HousekeepingTask]:
        """获取任务列表（默认不含已撤销的任务）"""
        query = self.db.query(HousekeepingTask)

        if status:
            query = query.filter(HousekeepingTask.status == status)
        elif not include_cancelled:
            query = query.filter(HousekeepingTask.status != TaskStatus.CANCELLED)
        if room_id:
            query = query.filter(HousekeepingTask.room_id == room_id)
        if assignee_id:
            query = query.filter(HousekeepingTask.assignee_id == assignee_id)

        return query.order_by(HousekeepingTask.created_at.desc(), HousekeepingTask.id.desc()).all()

    def get_task(self, task_id: int) -> Optional[HousekeepingTask]:
        return self.db.query(HousekeepingTask).filter(HousekeepingTask.id == task_id).first()

    def _validate_assignee(self, assignee_id: int) -> User:
        assignee = self.db.query(User).filter(
            User.id == assignee_id,
            User.role.in_(ASSIGNABLE_ROLES),
            User.is_active == True
        ).first()
        if not assignee:
            raise ValueError("指定的清洁员不存在或已停用")
        return assignee

    def publish_task_event(self, event_type: EventType, task: HousekeepingTask,
                           operator_id: Optional[int], trigger: str = "manual") -> None:
        self._publish_event(Event(
            event_type=event_type,
            timestamp=datetime.now(),
            data=TaskEventData(
                task_id=task.id,
                task_name=task.task_name,
                room_id=task.room_id,
                room_number=task.room.room_number if task.room else "",
                status=task.status.value,
                operator_id=operator_id,
                trigger=trigger
            ).to_dict(),
            source="task_service"
        ))

    def build_checkout_task(self, booking: Booking, operator_id: Optional[int] = None) -> HousekeepingTask:
        """
        退房时在当前事务内创建清洁任务（不提交）

        由预订服务在退房事务中调用，保证房间变脏与任务创建同时生效
        """
        room = booking.room
        task = HousekeepingTask(
            task_name=f"Clean room {room.room_number}",
            notes=f"退房清洁 - 预订 {booking.confirmation_code}",
            status=TaskStatus.PENDING,
            room_id=room.id,
            created_by=operator_id
        )
        self.db.add(task)
        self.db.flush()
        logger.info(f"Cleaning task {task.id} created for room {room.room_number} on checkout")
        return task

    def create_task(self, data: TaskCreate, created_by: Optional[int] = None) -> HousekeepingTask:
        """创建任务"""
        room = self.db.query(Room).filter(Room.id == data.room_id).first()
        if not room:
            raise ValueError("房间不存在")

        if data.assignee_id:
            self._validate_assignee(data.assignee_id)

        task = HousekeepingTask(
            task_name=data.task_name.strip(),
            notes=data.notes,
            status=TaskStatus.PENDING,
            room_id=data.room_id,
            assignee_id=data.assignee_id,
            created_by=created_by
        )
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)

        self.publish_task_event(EventType.TASK_CREATED, task, created_by)
        return task

    @staticmethod
    def _check_transition(task: HousekeepingTask, target: TaskStatus) -> None:
        if task.status != target and not task_state_machine.is_valid_transition(task.status, target):
            raise ValueError(
                f"任务状态不能从 {task.status.value} 变更为 {target.value}"
            )

    def _apply_status(self, task: HousekeepingTask, target: TaskStatus) -> None:
        """按任务状态机校验并应用状态变更"""
        self._check_transition(task, target)
        if task.status == target:
            return
        task.status = target
        if target == TaskStatus.COMPLETED:
            task.completed_at = datetime.now()
        elif target == TaskStatus.IN_PROGRESS and task.room.status == RoomStatus.DIRTY:
            # 开始清洁
            task.room.status = RoomStatus.CLEANING

    def update_task(self, task_id: int, data: TaskUpdate, operator_id: Optional[int] = None) -> HousekeepingTask:
        """
        更新任务

        status 为字符串，大小写不敏感地解析为 TaskStatus，未知值抛出 ValueError
        """
        task = self.get_task(task_id)
        if not task:
            raise ValueError("任务不存在")

        # 先完成全部校验，再修改字段，校验失败时会话保持干净
        target = TaskStatus.parse(data.status) if data.status is not None else None
        if data.task_name is not None and not data.task_name.strip():
            raise ValueError("任务名称不能为空")
        if data.assignee_id is not None:
            self._validate_assignee(data.assignee_id)
        if target is not None:
            self._check_transition(task, target)
        was_completed = task.status == TaskStatus.COMPLETED

        if data.task_name is not None:
            task.task_name = data.task_name.strip()
        if data.notes is not None:
            task.notes = data.notes
        if data.assignee_id is not None:
            task.assignee_id = data.assignee_id
        if target is not None:
            self._apply_status(task, target)

        self.db.commit()
        self.db.refresh(task)

        if not was_completed and task.status == TaskStatus.COMPLETED:
            self.publish_task_event(EventType.TASK_COMPLETED, task, operator_id)
        return task

    def complete_task(self, task_id: int, operator_id: Optional[int] = None) -> HousekeepingTask:
        """完成任务（已完成的任务重复调用不报错）"""
        task = self.get_task(task_id)
        if not task:
            raise ValueError("任务不存在")

        if task.status == TaskStatus.COMPLETED:
            return task

        self._apply_status(task, TaskStatus.COMPLETED)
        self.db.commit()
        self.db.refresh(task)

        # 发布任务完成事件（事件处理器会把房间放回空闲）
        self.publish_task_event(EventType.TASK_COMPLETED, task, operator_id)
        return task

    def delete_task(self, task_id: int) -> HousekeepingTask:
        """删除任务：状态置为 Cancelled"""
        task = self.get_task(task_id)
        if not task:
            raise ValueError("任务不存在")

        if task.status != TaskStatus.CANCELLED:
            self._apply_status(task, TaskStatus.CANCELLED)
            self.db.commit()
            self.db.refresh(task)
            logger.info(f"Task {task.id} cancelled")
        return task

    def get_task_detail(self, task_id: int) -> Optional[dict]:
        task = self.get_task(task_id)
        if not task:
            return None
        return {
            "id": task.id,
            "task_name": task.task_name,
            "notes": task.notes,
            "status": task.status,
            "room_id": task.room_id,
            "room_number": task.room.room_number if task.room else None,
            "assignee_id": task.assignee_id,
            "assignee_name": task.assignee.full_name if task.assignee else None,
            "created_at": task.created_at,
            "completed_at": task.completed_at,
        }
