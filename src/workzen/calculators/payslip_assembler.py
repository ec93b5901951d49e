"""Payslip assembly from salary components, attendance and leave."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from workzen.calculators.salary_calculator import ComponentValidationError, SalaryComponentCalculator
from workzen.calculators.structure_resolver import ConfigurationError, SalaryStructureResolver
from workzen.calculators.types import (
    HUNDRED,
    ZERO,
    PayslipBreakdown,
    SalaryComponents,
    WorkedDaysBreakdown,
    WorkedDaysLine,
    round_to_cents,
    to_decimal,
)
from workzen.models.attendance import AttendanceStatus

if TYPE_CHECKING:
    from workzen.models import Attendance, Employee, Leave, Payrun, PayrollSettings, SalaryStructure

__all__ = ["ConfigurationError", "PayableDaysPolicy", "PayslipAssembler"]

ONE = Decimal("1")
HALF = Decimal("0.5")


class PayableDaysPolicy:
    """Counts payable days for one employee over a pay period.

    Per calendar day, first match wins:
    1. attendance present/late -> 1 worked day
    2. attendance half_day -> 0.5 worked, 0.5 absent
    3. attendance absent -> 1 absent
    4. approved paid leave -> 1 paid leave day
    5. approved unpaid leave -> 1 unpaid leave day
    6. non-working weekday -> 1 weekly off (paid)
    7. otherwise -> 1 absent

    payable = period_days - unpaid_leave_days - absent_days
    """

    def __init__(self, non_working_weekdays: Iterable[int] = frozenset({5, 6})):
        self.non_working_weekdays = frozenset(non_working_weekdays)

    def compute(
        self,
        period_start: date,
        period_end: date,
        attendance: Iterable[Attendance],
        leaves: Iterable[Leave],
        daily_rate: Decimal,
    ) -> WorkedDaysBreakdown:
        by_date = {
            record.date: record
            for record in attendance
            if period_start <= record.date <= period_end
        }
        approved = [leave for leave in leaves if leave.status == "approved"]

        worked = paid_leave = weekly_off = unpaid = absent = ZERO
        hours = ZERO
        period_days = (period_end - period_start).days + 1

        day = period_start
        while day <= period_end:
            record = by_date.get(day)
            if record is not None:
                hours += record.hours_worked or ZERO
                if record.status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE):
                    worked += ONE
                elif record.status == AttendanceStatus.HALF_DAY:
                    worked += HALF
                    absent += HALF
                else:
                    absent += ONE
            else:
                leave = next((lv for lv in approved if lv.covers(day)), None)
                if leave is not None and leave.is_paid:
                    paid_leave += ONE
                elif leave is not None:
                    unpaid += ONE
                elif day.weekday() in self.non_working_weekdays:
                    weekly_off += ONE
                else:
                    absent += ONE
            day += timedelta(days=1)

        total_days = Decimal(period_days) - unpaid - absent

        items = [
            WorkedDaysLine("attendance", worked, "Attendance", round_to_cents(worked * daily_rate)),
            WorkedDaysLine("paid_leave", paid_leave, "Paid Time Off", round_to_cents(paid_leave * daily_rate)),
        ]
        if weekly_off:
            items.append(
                WorkedDaysLine("weekly_off", weekly_off, "Weekly Off", round_to_cents(weekly_off * daily_rate))
            )
        if unpaid:
            items.append(WorkedDaysLine("unpaid_leave", unpaid, "Unpaid Leave"))
        if absent:
            items.append(WorkedDaysLine("absent", absent, "Absent"))

        return WorkedDaysBreakdown(
            period_days=period_days,
            total_days=total_days,
            total_amount=round_to_cents(total_days * daily_rate),
            items=tuple(items),
            worked_days=worked,
            paid_leave_days=paid_leave,
            weekly_off_days=weekly_off,
            unpaid_leave_days=unpaid,
            absent_days=absent,
            hours_worked=hours,
        )


class PayslipAssembler:
    """Assembles a payslip breakdown for one employee in one payrun.

    Pipeline:
    1) Salary components (stored structure, or flat-salary defaults)
    2) Payable days from attendance and leave
    3) Base salary = basic salary, prorated when payable days fall short
    4) Overtime, bonus and allowances
    5) Tax and insurance from organisation rates, PF and flat deductions
    6) Aggregates: net = max(0, gross - total deductions)

    Only basic salary is prorated. Bonus and allowances are paid in full.
    """

    STANDARD_DAY_HOURS = Decimal("8")
    OVERTIME_MULTIPLIER = Decimal("1.5")

    def __init__(self, policy: PayableDaysPolicy | None = None):
        self.policy = policy or PayableDaysPolicy()

    def assemble(
        self,
        employee: Employee,
        payrun: Payrun,
        attendance_records: Iterable[Attendance],
        leave_records: Iterable[Leave],
        settings: PayrollSettings,
        structure: SalaryStructure | None = None,
    ) -> PayslipBreakdown:
        """Compute the payslip breakdown.

        Raises:
            ConfigurationError: If the employee has no salary basis
        """
        components = SalaryStructureResolver.components_for(
            employee, structure, payrun.pay_period_start
        )
        attendance_records = list(attendance_records)

        period_days = (payrun.pay_period_end - payrun.pay_period_start).days + 1
        daily_rate = components.gross_salary / period_days
        worked_days = self.policy.compute(
            payrun.pay_period_start,
            payrun.pay_period_end,
            attendance_records,
            leave_records,
            daily_rate,
        )

        base_salary = components.basic_salary
        if worked_days.total_days < period_days:
            payable = max(ZERO, worked_days.total_days)
            base_salary = round_to_cents(base_salary * payable / period_days)

        earnings = {
            "base_salary": base_salary,
            "overtime": self._overtime(components, attendance_records, payrun, settings),
            "bonus": components.performance_bonus,
            "allowances": (
                components.house_rent_allowance
                + components.standard_allowance
                + components.travel_allowance
                + components.fixed_allowance
            ),
        }
        gross = sum(earnings.values(), ZERO)

        deductions = {
            "tax": round_to_cents(gross * to_decimal(settings.tax_rate) / HUNDRED),
            "insurance": round_to_cents(gross * to_decimal(settings.insurance_rate) / HUNDRED),
            "provident_fund": components.pf_employee,
            "professional_tax": components.professional_tax,
            "other_deductions": components.tds + components.other_deductions,
        }

        return self._with_aggregates(
            PayslipBreakdown(**earnings, **deductions, worked_days=worked_days)
        )

    def adjust(self, breakdown: PayslipBreakdown, **changes: Any) -> PayslipBreakdown:
        """Apply manual edits to earning or deduction fields.

        Aggregates are always recomputed; they cannot be edited directly.
        """
        editable = PayslipBreakdown.EARNING_FIELDS + PayslipBreakdown.DEDUCTION_FIELDS
        values: dict[str, Decimal] = {}
        for name, value in changes.items():
            if name not in editable:
                raise ComponentValidationError(name, value, "not an editable payslip field")
            values[name] = round_to_cents(SalaryComponentCalculator.validate_amount(name, value))
        return self._with_aggregates(replace(breakdown, **values))

    def _overtime(
        self,
        components: SalaryComponents,
        attendance_records: list[Attendance],
        payrun: Payrun,
        settings: PayrollSettings,
    ) -> Decimal:
        extra_hours = ZERO
        for record in attendance_records:
            if not payrun.pay_period_start <= record.date <= payrun.pay_period_end:
                continue
            if record.status not in (AttendanceStatus.PRESENT, AttendanceStatus.LATE):
                continue
            hours = record.hours_worked or ZERO
            if hours > self.STANDARD_DAY_HOURS:
                extra_hours += hours - self.STANDARD_DAY_HOURS

        if extra_hours == 0 or not settings.pay_period_days:
            return ZERO

        hourly_rate = components.month_wage / Decimal(settings.pay_period_days) / self.STANDARD_DAY_HOURS
        return round_to_cents(extra_hours * hourly_rate * self.OVERTIME_MULTIPLIER)

    @staticmethod
    def _with_aggregates(breakdown: PayslipBreakdown) -> PayslipBreakdown:
        gross = sum((getattr(breakdown, f) for f in PayslipBreakdown.EARNING_FIELDS), ZERO)
        total = sum((getattr(breakdown, f) for f in PayslipBreakdown.DEDUCTION_FIELDS), ZERO)
        net = max(ZERO, gross - total) if gross > 0 else ZERO
        return replace(breakdown, gross_pay=gross, total_deductions=total, net_pay=net)
