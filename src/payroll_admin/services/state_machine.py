"""Per-record payslip generation state machine with transition validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class PayslipStatus(str, Enum):
    """Payslip generation status values."""

    PENDING = "pending"
    RENDERING_PRIMARY = "rendering_primary"
    RENDERING_FALLBACK = "rendering_fallback"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PayslipStateMachine:
    """State machine for one record's trip through a generation batch.

    Allowed transitions:
    - pending → rendering_primary
    - pending → rendering_fallback (browser unavailable for the batch)
    - pending → failed (record not found)
    - rendering_primary → uploading
    - rendering_primary → rendering_fallback
    - rendering_fallback → uploading
    - rendering_fallback → failed
    - uploading → succeeded
    - uploading → failed

    An upload failure is terminal; it never sends a record back to rendering.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayslipStatus.PENDING: [
            PayslipStatus.RENDERING_PRIMARY,
            PayslipStatus.RENDERING_FALLBACK,
            PayslipStatus.FAILED,
        ],
        PayslipStatus.RENDERING_PRIMARY: [
            PayslipStatus.UPLOADING,
            PayslipStatus.RENDERING_FALLBACK,
        ],
        PayslipStatus.RENDERING_FALLBACK: [
            PayslipStatus.UPLOADING,
            PayslipStatus.FAILED,
        ],
        PayslipStatus.UPLOADING: [PayslipStatus.SUCCEEDED, PayslipStatus.FAILED],
        PayslipStatus.SUCCEEDED: [],  # Terminal state
        PayslipStatus.FAILED: [],  # Terminal state
    }

    TERMINAL = {PayslipStatus.SUCCEEDED, PayslipStatus.FAILED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


@dataclass
class PayslipJob:
    """Tracks one record's status and the path it took."""

    batch_id: str
    status: PayslipStatus = PayslipStatus.PENDING
    history: list[PayslipStatus] = field(default_factory=lambda: [PayslipStatus.PENDING])

    def transition(self, to_status: PayslipStatus) -> None:
        PayslipStateMachine.validate_transition(self.status, to_status)
        self.status = to_status
        self.history.append(to_status)

    def enter_rendering(self, is_fallback: bool) -> None:
        """Move into the rendering state for a renderer; a no-op when already there."""
        target = (
            PayslipStatus.RENDERING_FALLBACK if is_fallback else PayslipStatus.RENDERING_PRIMARY
        )
        if self.status != target:
            self.transition(target)

    def fail(self) -> None:
        self.transition(PayslipStatus.FAILED)

    @property
    def used_fallback(self) -> bool:
        return PayslipStatus.RENDERING_FALLBACK in self.history
