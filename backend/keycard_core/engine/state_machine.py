"""
keycard_core/engine/state_machine.py

状态机引擎 - 声明式的状态转换表

状态本身保存在实体上（数据库字段），状态机只负责回答
"当前状态 + 触发动作 -> 目标状态" 以及转换是否合法。
"""
from typing import Dict, List, Optional, Callable, Any
from dataclasses import dataclass, field
from enum import Enum
import logging

logger = logging.getLogger(__name__)


def _state_key(state: Any) -> str:
    """统一状态键：枚举取 value，其余转为字符串"""
    if isinstance(state, Enum):
        return str(state.value)
    return str(state)


@dataclass
class StateTransition:
    """
    状态转换定义

    Attributes:
        from_state: 源状态
        to_state: 目标状态
        trigger: 触发动作
        condition: 可选的转换条件
    """

    from_state: str
    to_state: str
    trigger: str
    condition: Optional[Callable[[Dict[str, Any]], bool]] = None

    def is_allowed(self, context: Dict[str, Any]) -> bool:
        """检查转换是否被允许"""
        if self.condition is None:
            return True
        try:
            return bool(self.condition(context))
        except Exception as e:
            logger.error(f"Error checking transition condition: {e}")
            return False


@dataclass
class StateMachineConfig:
    """
    状态机配置

    Attributes:
        name: 状态机名称
        states: 所有状态的列表
        transitions: 转换列表
        initial_state: 初始状态
        final_states: 终止状态（不允许再转出）
    """

    name: str
    states: List[str]
    transitions: List[StateTransition]
    initial_state: str
    final_states: List[str] = field(default_factory=list)


class StateMachine:
    """
    状态机

    Example:
        >>> machine = StateMachine(StateMachineConfig(
        ...     name="Booking",
        ...     states=["reserved", "checked_in"],
        ...     transitions=[StateTransition("reserved", "checked_in", "check_in")],
        ...     initial_state="reserved",
        ... ))
        >>> machine.fire("reserved", "check_in")
        'checked_in'
    """

    def __init__(self, config: StateMachineConfig):
        self._config = config
        self._states = {_state_key(s) for s in config.states}
        self._final_states = {_state_key(s) for s in config.final_states}
        self._transition_map: Dict[str, Dict[str, StateTransition]] = {}

        # 构建转换映射: (from_state, trigger) -> transition
        for t in config.transitions:
            from_key = _state_key(t.from_state)
            to_key = _state_key(t.to_state)
            if from_key not in self._states or to_key not in self._states:
                raise ValueError(
                    f"{config.name}: transition {from_key} -> {to_key} references unknown state"
                )
            if from_key in self._final_states:
                raise ValueError(f"{config.name}: final state {from_key} cannot have transitions")
            self._transition_map.setdefault(from_key, {})[t.trigger] = t

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> StateMachineConfig:
        """获取状态机配置"""
        return self._config

    @property
    def initial_state(self) -> str:
        return _state_key(self._config.initial_state)

    def is_final(self, state: Any) -> bool:
        """是否为终止状态"""
        return _state_key(state) in self._final_states

    def fire(self, current_state: Any, trigger: str,
             context: Optional[Dict[str, Any]] = None) -> Optional[str]:
        """
        计算转换结果

        Args:
            current_state: 当前状态
            trigger: 触发动作
            context: 可选的上下文数据（传给转换条件）

        Returns:
            目标状态；转换不合法时返回 None
        """
        transition = self._transition_map.get(_state_key(current_state), {}).get(trigger)
        if transition is None or not transition.is_allowed(context or {}):
            logger.debug(
                f"{self.name}: trigger '{trigger}' rejected in state '{_state_key(current_state)}'"
            )
            return None
        return _state_key(transition.to_state)

    def is_valid_transition(self, from_state: Any, to_state: Any) -> bool:
        """检查 from_state -> to_state 是否存在任一合法转换"""
        to_key = _state_key(to_state)
        return any(
            _state_key(t.to_state) == to_key
            for t in self._transition_map.get(_state_key(from_state), {}).values()
        )


__all__ = [
    "StateTransition",
    "StateMachineConfig",
    "StateMachine",
]
