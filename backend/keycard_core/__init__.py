"""
keycard_core - 与具体业务解耦的框架层

包含：
- engine: 核心引擎（状态机）
- result: 统一的操作结果类型

使用方式:
    >>> from keycard_core.engine import StateMachine, StateMachineConfig, StateTransition
    >>> from keycard_core.result import OperationResult, ErrorCode
"""
from keycard_core.result import ErrorCode, OperationResult
from keycard_core.engine import StateTransition, StateMachineConfig, StateMachine

__all__ = [
    "ErrorCode",
    "OperationResult",
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
]
