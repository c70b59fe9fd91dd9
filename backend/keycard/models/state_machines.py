"""
业务状态机定义
预订与清洁任务的合法状态转换
"""
from keycard_core.engine.state_machine import StateMachine, StateMachineConfig, StateTransition
from keycard.models.ontology import BookingStatus, TaskStatus


class BookingTrigger:
    """预订触发动作"""
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    CANCEL = "cancel"


class TaskTrigger:
    """清洁任务触发动作"""
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


booking_state_machine = StateMachine(StateMachineConfig(
    name="Booking",
    states=[s.value for s in BookingStatus],
    transitions=[
        StateTransition(BookingStatus.RESERVED.value, BookingStatus.CHECKED_IN.value, BookingTrigger.CHECK_IN),
        StateTransition(BookingStatus.CHECKED_IN.value, BookingStatus.CHECKED_OUT.value, BookingTrigger.CHECK_OUT),
        StateTransition(BookingStatus.RESERVED.value, BookingStatus.CANCELLED.value, BookingTrigger.CANCEL),
    ],
    initial_state=BookingStatus.RESERVED.value,
    final_states=[BookingStatus.CHECKED_OUT.value, BookingStatus.CANCELLED.value],
))


task_state_machine = StateMachine(StateMachineConfig(
    name="HousekeepingTask",
    states=[s.value for s in TaskStatus],
    transitions=[
        StateTransition(TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value, TaskTrigger.START),
        StateTransition(TaskStatus.PENDING.value, TaskStatus.COMPLETED.value, TaskTrigger.COMPLETE),
        StateTransition(TaskStatus.IN_PROGRESS.value, TaskStatus.COMPLETED.value, TaskTrigger.COMPLETE),
        StateTransition(TaskStatus.PENDING.value, TaskStatus.CANCELLED.value, TaskTrigger.CANCEL),
        StateTransition(TaskStatus.IN_PROGRESS.value, TaskStatus.CANCELLED.value, TaskTrigger.CANCEL),
    ],
    initial_state=TaskStatus.PENDING.value,
    final_states=[TaskStatus.COMPLETED.value, TaskStatus.CANCELLED.value],
))
