"""Payrun, payslip and payroll settings models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from workzen.models.employee import Employee

_MONEY = Numeric(12, 2)


class Payrun(Base, TimestampMixin):
    """Monthly payroll batch producing one payslip per covered employee."""

    __tablename__ = "payrun"

    payrun_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    pay_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'processing', 'completed', 'failed')",
            name="payrun_status_check",
        ),
        CheckConstraint("pay_period_end >= pay_period_start", name="payrun_dates_check"),
    )

    # Relationships
    payslips: Mapped[list[Payslip]] = relationship(back_populates="payrun")

    @property
    def period_days(self) -> int:
        """Calendar days in the pay period, both ends inclusive."""
        return (self.pay_period_end - self.pay_period_start).days + 1


class Payslip(Base, TimestampMixin):
    """Computed earnings, deductions and net pay for one employee in one payrun."""

    __tablename__ = "payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payrun_id: Mapped[UUID] = mapped_column(
        ForeignKey("payrun.payrun_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    # Earnings
    base_salary: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    overtime: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    allowances: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    # Deductions
    tax: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    insurance: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    provident_fund: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    professional_tax: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    # Aggregates
    gross_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    net_pay: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    payable_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False, default=Decimal("0"))
    period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    computed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "payrun_id", name="payslip_employee_payrun_unique"),
        CheckConstraint(
            "status IN ('draft', 'computed', 'validated')",
            name="payslip_status_check",
        ),
    )

    # Relationships
    payrun: Mapped[Payrun] = relationship(back_populates="payslips")
    employee: Mapped[Employee] = relationship()


class PayrollSettings(Base, TimestampMixin):
    """Organisation-wide payroll rates (single row keyed ``default``)."""

    __tablename__ = "payroll_settings"

    settings_id: Mapped[str] = mapped_column(String, primary_key=True, default="default")
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("18.5"))
    insurance_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("3.5"))
    pay_period_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)

    __table_args__ = (
        CheckConstraint("tax_rate >= 0 AND tax_rate <= 100", name="payroll_settings_tax_rate_check"),
        CheckConstraint(
            "insurance_rate >= 0 AND insurance_rate <= 100",
            name="payroll_settings_insurance_rate_check",
        ),
        CheckConstraint(
            "pay_period_days >= 1 AND pay_period_days <= 31",
            name="payroll_settings_pay_period_days_check",
        ),
    )
