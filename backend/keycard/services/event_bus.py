"""
事件总线 - 内存级发布/订阅模式
预订生命周期服务发布事件，事件处理器订阅后执行后续动作
"""
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from collections import deque
from enum import Enum
import logging
import threading

logger = logging.getLogger(__name__)


def _type_key(event_type: Any) -> str:
    """EventType 枚举与普通字符串统一为同一个键"""
    if isinstance(event_type, Enum):
        return str(event_type.value)
    return str(event_type)


@dataclass
class Event:
    """事件基类"""
    event_type: str
    timestamp: datetime
    data: Dict[str, Any]
    source: str  # 触发来源（服务名）
    event_id: str = field(default_factory=lambda: datetime.now().strftime("%Y%m%d%H%M%S%f"))

    @property
    def type_key(self) -> str:
        return _type_key(self.event_type)


class EventBus:
    """
    内存级事件总线（线程安全单例模式）

    使用方式：
    1. 订阅事件：event_bus.subscribe(EventType.TASK_COMPLETED, handler_func)
    2. 发布事件：event_bus.publish(Event(...))
    3. 取消订阅：event_bus.unsubscribe(EventType.TASK_COMPLETED, handler_func)
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._subscribers: Dict[str, List[Callable]] = {}
        self._event_history: deque = deque(maxlen=100)
        self._subscriber_lock = threading.Lock()
        self._initialized = True
        logger.info("EventBus initialized")

    def subscribe(self, event_type: Any, handler: Callable) -> None:
        """
        订阅事件

        Args:
            event_type: 事件类型（EventType 或 "task.completed" 这样的字符串）
            handler: 处理函数，接收 Event 对象作为参数
        """
        key = _type_key(event_type)
        with self._subscriber_lock:
            handlers = self._subscribers.setdefault(key, [])
            if handler not in handlers:
                handlers.append(handler)
                logger.info(f"Handler {handler.__name__} subscribed to {key}")

    def unsubscribe(self, event_type: Any, handler: Callable) -> None:
        key = _type_key(event_type)
        with self._subscriber_lock:
            if handler in self._subscribers.get(key, []):
                self._subscribers[key].remove(handler)
                logger.info(f"Handler {handler.__name__} unsubscribed from {key}")

    def publish(self, event: Event) -> None:
        """
        发布事件（同步执行所有处理器）

        处理器异常只记录日志，不影响其他处理器，也不会传回发布方
        """
        self._event_history.append(event)

        with self._subscriber_lock:
            handlers = self._subscribers.get(event.type_key, []).copy()

        if handlers:
            logger.info(f"Publishing {event.type_key} to {len(handlers)} handlers")

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler {handler.__name__} error for {event.type_key}: {e}",
                    exc_info=True
                )

    def get_history(self, event_type: Optional[Any] = None, limit: int = 50) -> List[Event]:
        """获取事件历史（最新的在前）"""
        history = list(self._event_history)
        if event_type is not None:
            key = _type_key(event_type)
            history = [e for e in history if e.type_key == key]
        return list(reversed(history))[:limit]

    def get_subscribers(self, event_type: Optional[Any] = None) -> Dict[str, List[str]]:
        with self._subscriber_lock:
            if event_type is not None:
                key = _type_key(event_type)
                return {key: [h.__name__ for h in self._subscribers.get(key, [])]}
            return {
                et: [h.__name__ for h in handlers]
                for et, handlers in self._subscribers.items()
            }

    def clear_subscribers(self) -> None:
        """清空所有订阅（用于测试）"""
        with self._subscriber_lock:
            self._subscribers.clear()
        logger.info("All subscribers cleared")

    def clear_history(self) -> None:
        self._event_history.clear()


# 全局事件总线实例
event_bus = EventBus()
