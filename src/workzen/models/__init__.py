"""ORM models."""

from workzen.models.attendance import Attendance, AttendanceStatus, Leave, LeaveType
from workzen.models.base import Base, TimestampMixin
from workzen.models.employee import Employee
from workzen.models.payroll import Payrun, PayrollSettings, Payslip
from workzen.models.salary import SalaryStructure

__all__ = [
    "Attendance",
    "AttendanceStatus",
    "Base",
    "Employee",
    "Leave",
    "LeaveType",
    "Payrun",
    "PayrollSettings",
    "Payslip",
    "SalaryStructure",
    "TimestampMixin",
]
