"""
路由公共工具：操作结果 -> HTTP 状态码
"""
from fastapi import HTTPException, status
from keycard_core.result import ErrorCode, OperationResult

ERROR_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.ROOM_UNAVAILABLE: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
}


def raise_for_result(result: OperationResult) -> OperationResult:
    """失败结果转换为 HTTPException；成功原样返回"""
    if result.success:
        return result
    status_code = ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(
        status_code=status_code,
        detail={
            "code": result.error_code.value if result.error_code else None,
            "message": result.message,
            **result.data,
        }
    )
