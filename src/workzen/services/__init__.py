"""WorkZen payroll services."""

from workzen.services.attendance_reconciler import AttendanceReconciler, ReconciliationResult
from workzen.services.attendance_service import AttendanceError, AttendanceService
from workzen.services.payrun_service import PayrunProcessResult, PayrunService, PayrunValidationError
from workzen.services.salary_structure_service import SalaryStructureService
from workzen.services.settings_service import PayrollSettingsService, SettingsValidationError
from workzen.services.state_machine import (
    InvalidTransitionError,
    PayrunStateMachine,
    PayrunStatus,
    PayslipLockedError,
    PayslipStateMachine,
    PayslipStatus,
)

__all__ = [
    "AttendanceError",
    "AttendanceReconciler",
    "AttendanceService",
    "InvalidTransitionError",
    "PayrollSettingsService",
    "PayrunProcessResult",
    "PayrunService",
    "PayrunStateMachine",
    "PayrunStatus",
    "PayrunValidationError",
    "PayslipLockedError",
    "PayslipStateMachine",
    "PayslipStatus",
    "ReconciliationResult",
    "SalaryStructureService",
    "SettingsValidationError",
]
