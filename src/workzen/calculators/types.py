"""Type definitions for the payroll computation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats and strings to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# snake_case field -> payload key used by the UI/API layer
_PAYLOAD_KEYS: dict[str, str] = {
    "month_wage": "monthWage",
    "yearly_wage": "yearlyWage",
    "basic_salary": "basicSalary",
    "basic_salary_percent": "basicSalaryPercent",
    "house_rent_allowance": "houseRentAllowance",
    "hra_percent": "hraPercent",
    "standard_allowance": "standardAllowance",
    "standard_allowance_percent": "standardAllowancePercent",
    "performance_bonus": "performanceBonus",
    "performance_bonus_percent": "performanceBonusPercent",
    "travel_allowance": "travelAllowance",
    "lta_percent": "ltaPercent",
    "fixed_allowance": "fixedAllowance",
    "fixed_allowance_percent": "fixedAllowancePercent",
    "gross_salary": "grossSalary",
    "pf_employee": "pfEmployee",
    "pf_employee_percent": "pfEmployeePercent",
    "pf_employer": "pfEmployer",
    "pf_employer_percent": "pfEmployerPercent",
    "professional_tax": "professionalTax",
    "tds": "tds",
    "other_deductions": "otherDeductions",
    "total_deductions": "totalDeductions",
    "net_salary": "netSalary",
}

PAYLOAD_TO_FIELD: dict[str, str] = {v: k for k, v in _PAYLOAD_KEYS.items()}


@dataclass(frozen=True)
class SalaryComponents:
    """A complete, internally consistent salary component set.

    Every earning/deduction amount is paired with its percent except the
    flat ``professional_tax``, ``tds`` and ``other_deductions``. Instances
    are immutable; calculator operations return new instances.
    """

    month_wage: Decimal = ZERO
    yearly_wage: Decimal = ZERO
    basic_salary: Decimal = ZERO
    basic_salary_percent: Decimal = ZERO
    house_rent_allowance: Decimal = ZERO
    hra_percent: Decimal = ZERO
    standard_allowance: Decimal = ZERO
    standard_allowance_percent: Decimal = ZERO
    performance_bonus: Decimal = ZERO
    performance_bonus_percent: Decimal = ZERO
    travel_allowance: Decimal = ZERO
    lta_percent: Decimal = ZERO
    fixed_allowance: Decimal = ZERO
    fixed_allowance_percent: Decimal = ZERO
    gross_salary: Decimal = ZERO
    pf_employee: Decimal = ZERO
    pf_employee_percent: Decimal = ZERO
    pf_employer: Decimal = ZERO
    pf_employer_percent: Decimal = ZERO
    professional_tax: Decimal = ZERO
    tds: Decimal = ZERO
    other_deductions: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_salary: Decimal = ZERO

    @property
    def earnings_total(self) -> Decimal:
        return (
            self.basic_salary
            + self.house_rent_allowance
            + self.standard_allowance
            + self.performance_bonus
            + self.travel_allowance
            + self.fixed_allowance
        )

    def to_dict(self) -> dict[str, Decimal]:
        """Return the component set keyed by payload (camelCase) names."""
        return {_PAYLOAD_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SalaryComponents:
        """Build from payload or snake_case keys; missing fields default to zero.

        Raises:
            KeyError: If a key names no component
        """
        values = {}
        for key, value in data.items():
            name = PAYLOAD_TO_FIELD.get(key, key)
            if name not in _PAYLOAD_KEYS:
                raise KeyError(key)
            values[name] = to_decimal(value)
        return cls(**values)


@dataclass(frozen=True)
class WorkedDaysLine:
    """One line of the worked-days table on a payslip."""

    type: str
    days: Decimal
    description: str
    amount: Decimal = ZERO


@dataclass(frozen=True)
class WorkedDaysBreakdown:
    """Payable-days result for one employee over one pay period."""

    period_days: int
    total_days: Decimal  # payable days
    total_amount: Decimal
    items: tuple[WorkedDaysLine, ...] = ()
    worked_days: Decimal = ZERO
    paid_leave_days: Decimal = ZERO
    weekly_off_days: Decimal = ZERO
    unpaid_leave_days: Decimal = ZERO
    absent_days: Decimal = ZERO
    hours_worked: Decimal = ZERO

    @property
    def is_full_period(self) -> bool:
        return self.total_days >= self.period_days

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [
                {
                    "type": item.type,
                    "days": item.days,
                    "description": item.description,
                    "amount": item.amount,
                }
                for item in self.items
            ],
            "totalDays": self.total_days,
            "totalAmount": self.total_amount,
            "periodDays": self.period_days,
            "unpaidLeaveDays": self.unpaid_leave_days,
            "absentDays": self.absent_days,
        }


@dataclass(frozen=True)
class PayslipBreakdown:
    """Earnings, deductions and aggregates for one payslip."""

    base_salary: Decimal = ZERO
    overtime: Decimal = ZERO
    bonus: Decimal = ZERO
    allowances: Decimal = ZERO
    tax: Decimal = ZERO
    insurance: Decimal = ZERO
    provident_fund: Decimal = ZERO
    professional_tax: Decimal = ZERO
    other_deductions: Decimal = ZERO
    gross_pay: Decimal = ZERO
    total_deductions: Decimal = ZERO
    net_pay: Decimal = ZERO
    worked_days: WorkedDaysBreakdown | None = field(default=None, compare=False)

    EARNING_FIELDS = ("base_salary", "overtime", "bonus", "allowances")
    DEDUCTION_FIELDS = (
        "tax",
        "insurance",
        "provident_fund",
        "professional_tax",
        "other_deductions",
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "earnings": {
                "baseSalary": self.base_salary,
                "overtime": self.overtime,
                "bonus": self.bonus,
                "allowances": self.allowances,
            },
            "deductions": {
                "tax": self.tax,
                "insurance": self.insurance,
                "providentFund": self.provident_fund,
                "professionalTax": self.professional_tax,
                "other": self.other_deductions,
            },
            "grossPay": self.gross_pay,
            "totalDeductions": self.total_deductions,
            "netPay": self.net_pay,
            "workedDays": self.worked_days.to_dict() if self.worked_days else None,
        }
