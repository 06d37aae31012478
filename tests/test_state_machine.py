"""Tests for the payslip generation state machine."""

import pytest

from payroll_admin.services.state_machine import (
    InvalidTransitionError,
    PayslipJob,
    PayslipStateMachine,
    PayslipStatus,
)


class TestPayslipStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        """Test that valid transitions are allowed."""
        assert PayslipStateMachine.can_transition("pending", "rendering_primary") is True
        assert PayslipStateMachine.can_transition("pending", "rendering_fallback") is True
        assert PayslipStateMachine.can_transition("rendering_primary", "uploading") is True
        assert PayslipStateMachine.can_transition("rendering_primary", "rendering_fallback") is True
        assert PayslipStateMachine.can_transition("rendering_fallback", "uploading") is True
        assert PayslipStateMachine.can_transition("rendering_fallback", "failed") is True
        assert PayslipStateMachine.can_transition("uploading", "succeeded") is True
        assert PayslipStateMachine.can_transition("uploading", "failed") is True

    def test_upload_failure_never_returns_to_rendering(self):
        assert PayslipStateMachine.can_transition("uploading", "rendering_fallback") is False
        assert PayslipStateMachine.can_transition("uploading", "rendering_primary") is False

    def test_primary_failure_must_try_fallback(self):
        """A primary render cannot fail the record directly."""
        assert PayslipStateMachine.can_transition("rendering_primary", "failed") is False

    def test_terminal_states(self):
        for status in ("succeeded", "failed"):
            assert PayslipStateMachine.is_terminal(status) is True
            assert PayslipStateMachine.get_next_statuses(status) == []

    def test_validate_transition_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            PayslipStateMachine.validate_transition("pending", "succeeded")

        assert exc_info.value.from_status == "pending"
        assert exc_info.value.to_status == "succeeded"


class TestPayslipJob:
    def test_fallback_path_is_recorded(self):
        job = PayslipJob("b-1")
        job.enter_rendering(is_fallback=False)
        job.enter_rendering(is_fallback=True)
        job.transition(PayslipStatus.UPLOADING)
        job.transition(PayslipStatus.SUCCEEDED)

        assert job.history == [
            PayslipStatus.PENDING,
            PayslipStatus.RENDERING_PRIMARY,
            PayslipStatus.RENDERING_FALLBACK,
            PayslipStatus.UPLOADING,
            PayslipStatus.SUCCEEDED,
        ]
        assert job.used_fallback is True

    def test_repeated_fallback_attempts_stay_in_state(self):
        """Two fallback renderers in a row do not add a transition."""
        job = PayslipJob("b-1")
        job.enter_rendering(is_fallback=True)
        job.enter_rendering(is_fallback=True)
        job.fail()

        assert job.history == [
            PayslipStatus.PENDING,
            PayslipStatus.RENDERING_FALLBACK,
            PayslipStatus.FAILED,
        ]

    def test_cannot_leave_terminal_state(self):
        job = PayslipJob("b-1")
        job.fail()
        with pytest.raises(InvalidTransitionError):
            job.enter_rendering(is_fallback=True)
