"""
keycard_core/engine - 核心引擎模块

- state_machine: 声明式状态机（状态转换校验）

使用方式:
    >>> from keycard_core.engine import StateMachine, StateMachineConfig, StateTransition
"""
from keycard_core.engine.state_machine import (
    StateTransition,
    StateMachineConfig,
    StateMachine,
)

__all__ = [
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
]
