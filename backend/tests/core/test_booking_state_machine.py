"""
状态机引擎与业务状态机测试
"""
import pytest
from keycard_core.engine.state_machine import StateMachine, StateMachineConfig, StateTransition
from keycard.models.ontology import BookingStatus, TaskStatus
from keycard.models.state_machines import (
    booking_state_machine, task_state_machine, BookingTrigger, TaskTrigger
)


class TestStateMachineEngine:

    @pytest.fixture
    def machine(self):
        return StateMachine(StateMachineConfig(
            name="Door",
            states=["closed", "open", "locked"],
            transitions=[
                StateTransition("closed", "open", "open"),
                StateTransition("open", "closed", "close"),
                StateTransition("closed", "locked", "lock",
                                condition=lambda ctx: ctx.get("has_key", False)),
            ],
            initial_state="closed",
        ))

    def test_fire_returns_target(self, machine):
        assert machine.fire("closed", "open") == "open"

    def test_fire_unknown_trigger_returns_none(self, machine):
        assert machine.fire("open", "lock") is None

    def test_condition_blocks_transition(self, machine):
        assert machine.fire("closed", "lock") is None
        assert machine.fire("closed", "lock", {"has_key": True}) == "locked"

    def test_condition_error_is_treated_as_denied(self):
        def broken(ctx):
            raise RuntimeError("boom")

        machine = StateMachine(StateMachineConfig(
            name="Broken",
            states=["a", "b"],
            transitions=[StateTransition("a", "b", "go", condition=broken)],
            initial_state="a",
        ))
        assert machine.fire("a", "go") is None

    def test_unknown_state_in_transition_rejected(self):
        with pytest.raises(ValueError):
            StateMachine(StateMachineConfig(
                name="Bad",
                states=["a"],
                transitions=[StateTransition("a", "z", "go")],
                initial_state="a",
            ))

    def test_final_state_cannot_have_transitions(self):
        with pytest.raises(ValueError):
            StateMachine(StateMachineConfig(
                name="Bad",
                states=["a", "b"],
                transitions=[StateTransition("b", "a", "back")],
                initial_state="a",
                final_states=["b"],
            ))


class TestBookingStateMachine:

    def test_initial_state_is_reserved(self):
        assert booking_state_machine.initial_state == BookingStatus.RESERVED.value

    def test_forward_path(self):
        assert booking_state_machine.fire(BookingStatus.RESERVED, BookingTrigger.CHECK_IN) == "CheckedIn"
        assert booking_state_machine.fire(BookingStatus.CHECKED_IN, BookingTrigger.CHECK_OUT) == "CheckedOut"

    def test_cancel_only_from_reserved(self):
        assert booking_state_machine.fire(BookingStatus.RESERVED, BookingTrigger.CANCEL) == "Cancelled"
        assert booking_state_machine.fire(BookingStatus.CHECKED_IN, BookingTrigger.CANCEL) is None

    @pytest.mark.parametrize("final", [BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED])
    def test_no_transition_leaves_final_states(self, final):
        assert booking_state_machine.is_final(final)
        for trigger in (BookingTrigger.CHECK_IN, BookingTrigger.CHECK_OUT, BookingTrigger.CANCEL):
            assert booking_state_machine.fire(final, trigger) is None

    def test_cannot_check_in_twice(self):
        assert booking_state_machine.fire(BookingStatus.CHECKED_IN, BookingTrigger.CHECK_IN) is None

    def test_enum_and_string_states_are_equivalent(self):
        assert booking_state_machine.fire("Reserved", BookingTrigger.CHECK_IN) == "CheckedIn"
        assert booking_state_machine.fire(BookingStatus.RESERVED, BookingTrigger.CHECK_IN) == "CheckedIn"
        assert booking_state_machine.is_valid_transition("Reserved", BookingStatus.CHECKED_IN)


class TestTaskStateMachine:

    def test_pending_can_start_complete_or_cancel(self):
        assert task_state_machine.fire(TaskStatus.PENDING, TaskTrigger.START) == "InProgress"
        assert task_state_machine.fire(TaskStatus.PENDING, TaskTrigger.COMPLETE) == "Completed"
        assert task_state_machine.fire(TaskStatus.PENDING, TaskTrigger.CANCEL) == "Cancelled"

    def test_completed_is_final(self):
        assert not task_state_machine.is_valid_transition(TaskStatus.COMPLETED, TaskStatus.PENDING)
        assert not task_state_machine.is_valid_transition(TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    def test_in_progress_cannot_go_back_to_pending(self):
        assert not task_state_machine.is_valid_transition(TaskStatus.IN_PROGRESS, TaskStatus.PENDING)
