"""
事件处理器
订阅领域事件并执行后续的房态维护
"""
from typing import Callable
import logging

from keycard.services.event_bus import event_bus, Event
from keycard.models.events import EventType
from keycard.models.ontology import Room, RoomStatus
from keycard.database import SessionLocal

logger = logging.getLogger(__name__)

# 清洁完成后可直接放回空闲的房态
RELEASABLE_ROOM_STATUSES = (RoomStatus.DIRTY, RoomStatus.CLEANING)


class EventHandlers:
    """
    事件处理器集合

    db_session_factory 可注入，测试时传入绑定内存库的会话工厂
    """

    def __init__(self, db_session_factory: Callable = None):
        self._db_session_factory = db_session_factory or SessionLocal
        self._registered = False

    def _get_db(self):
        return self._db_session_factory()

    def handle_task_completed(self, event: Event) -> None:
        """
        处理清洁任务完成事件：房间放回空闲

        只处理 Dirty / Cleaning 的房间，停用维修等房态不受影响
        """
        db = self._get_db()
        try:
            room_id = event.data.get("room_id")
            if not room_id:
                logger.warning("Invalid task completed event: missing room_id")
                return

            room = db.query(Room).filter(Room.id == room_id).first()
            if room and room.status in RELEASABLE_ROOM_STATUSES:
                room.status = RoomStatus.VACANT
                db.commit()
                logger.info(f"Room {room.room_number} status updated to Vacant after cleaning")
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to update room status: {e}", exc_info=True)
        finally:
            db.close()

    def register_handlers(self, event_bus_instance=None) -> None:
        """注册所有事件处理器"""
        if self._registered:
            return

        bus = event_bus_instance or event_bus
        bus.subscribe(EventType.TASK_COMPLETED, self.handle_task_completed)

        self._registered = True
        logger.info("Event handlers registered successfully")

    def unregister_handlers(self, event_bus_instance=None) -> None:
        """取消注册（用于测试）"""
        bus = event_bus_instance or event_bus
        bus.unsubscribe(EventType.TASK_COMPLETED, self.handle_task_completed)
        self._registered = False
        logger.info("Event handlers unregistered")


# 全局事件处理器实例
event_handlers = EventHandlers()


def register_event_handlers():
    """注册所有事件处理器（应用启动时调用）"""
    event_handlers.register_handlers()
