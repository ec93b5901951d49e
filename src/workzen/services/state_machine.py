"""Payrun and payslip state machines with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from workzen.models import Payrun, Payslip


class PayrunStatus(str, Enum):
    """Payrun status values."""

    DRAFT = "draft"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PayslipStatus(str, Enum):
    """Payslip status values."""

    DRAFT = "draft"
    COMPUTED = "computed"
    VALIDATED = "validated"


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


class PayslipLockedError(Exception):
    """Raised when a validated payslip, or one in a completed payrun, is edited."""

    def __init__(self, payslip_id: UUID, reason: str):
        self.payslip_id = payslip_id
        self.reason = reason
        super().__init__(f"Payslip {payslip_id} is read-only: {reason}")


class PayrunStateMachine:
    """State machine for payrun status transitions.

    Allowed transitions:
    - draft → processing
    - processing → completed
    - processing → failed

    Status never moves backwards; completed and failed are terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrunStatus.DRAFT: [PayrunStatus.PROCESSING],
        PayrunStatus.PROCESSING: [PayrunStatus.COMPLETED, PayrunStatus.FAILED],
        PayrunStatus.COMPLETED: [],
        PayrunStatus.FAILED: [],
    }

    # Payslips under these payrun statuses are read-only
    RESULTS_IMMUTABLE = {PayrunStatus.COMPLETED}

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
    def are_results_immutable(cls, status: str) -> bool:
        return status in cls.RESULTS_IMMUTABLE

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def transition(cls, payrun: Payrun, to_status: str) -> Payrun:
        """Validate and apply a transition in place."""
        cls.validate_transition(payrun.status, to_status)
        payrun.status = PayrunStatus(to_status).value
        return payrun


class PayslipStateMachine:
    """State machine for payslip status transitions.

    Allowed transitions:
    - draft → computed
    - draft → validated
    - computed → validated

    validated is terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayslipStatus.DRAFT: [PayslipStatus.COMPUTED, PayslipStatus.VALIDATED],
        PayslipStatus.COMPUTED: [PayslipStatus.VALIDATED],
        PayslipStatus.VALIDATED: [],
    }

    EDITABLE = {PayslipStatus.DRAFT, PayslipStatus.COMPUTED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_editable(cls, payslip_status: str, payrun_status: str) -> bool:
        """Check if a payslip's amounts may still be changed."""
        return payslip_status in cls.EDITABLE and not PayrunStateMachine.are_results_immutable(
            payrun_status
        )

    @classmethod
    def ensure_editable(cls, payslip: Payslip, payrun: Payrun) -> None:
        """Raise PayslipLockedError unless the payslip is editable."""
        if payslip.status == PayslipStatus.VALIDATED:
            raise PayslipLockedError(payslip.payslip_id, "payslip is validated")
        if PayrunStateMachine.are_results_immutable(payrun.status):
            raise PayslipLockedError(payslip.payslip_id, f"payrun is {payrun.status}")
        if not cls.is_editable(payslip.status, payrun.status):
            raise PayslipLockedError(payslip.payslip_id, f"status '{payslip.status}' is not editable")
