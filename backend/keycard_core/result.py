"""
keycard_core/result.py

统一的操作结果类型 - 生命周期操作返回此类型而不是抛出业务异常
Provides structured results so the HTTP layer can map error codes to responses.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """业务错误码（可恢复的校验失败，不是系统故障）"""
    INVALID_DATE_RANGE = "InvalidDateRange"
    ROOM_UNAVAILABLE = "RoomUnavailable"
    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    INVALID_GUEST_COUNT = "InvalidGuestCount"
    INVALID_STATUS = "InvalidStatus"
    FORBIDDEN = "Forbidden"


@dataclass
class OperationResult:
    """
    统一的操作结果

    - success: 成功/失败
    - message: 面向调用方的说明
    - error_code: 失败时的错误码
    - value: 成功时的返回对象（如 Booking）
    - data: 附加信息（如冲突的预订 ID）
    """
    success: bool
    message: str
    error_code: Optional[ErrorCode] = None
    value: Any = None
    data: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def ok(message: str, value: Any = None, **kwargs) -> "OperationResult":
        """快速创建成功结果"""
        return OperationResult(success=True, message=message, value=value, **kwargs)

    @staticmethod
    def fail(message: str, error_code: ErrorCode, **kwargs) -> "OperationResult":
        """快速创建失败结果"""
        return OperationResult(success=False, message=message, error_code=error_code, **kwargs)

    def __bool__(self) -> bool:
        return self.success
