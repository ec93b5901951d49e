"""Salary structure model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from workzen.models.employee import Employee

_MONEY = Numeric(12, 2)
_PERCENT = Numeric(9, 4)


class SalaryStructure(Base, TimestampMixin):
    """Versioned compensation configuration for one employee.

    Each earning/deduction component is stored as an amount and a percent of
    its base (month wage for basic/standard/fixed, basic salary for
    HRA/bonus/LTA/PF). Rows are superseded by a newer ``effective_from``
    and kept for payslip audit.
    """

    __tablename__ = "salary_structure"

    salary_structure_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False, default="Default Structure")
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    month_wage: Mapped[Decimal | None] = mapped_column(_MONEY, nullable=True)
    yearly_wage: Mapped[Decimal | None] = mapped_column(_MONEY, nullable=True)

    basic_salary: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    basic_salary_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    house_rent_allowance: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    hra_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    standard_allowance: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    standard_allowance_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    performance_bonus: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    performance_bonus_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    travel_allowance: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    lta_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    fixed_allowance: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    fixed_allowance_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)

    gross_salary: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    pf_employee: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    pf_employee_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    pf_employer: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    pf_employer_percent: Mapped[Decimal | None] = mapped_column(_PERCENT, nullable=True)
    professional_tax: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    tds: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    other_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))
    net_salary: Mapped[Decimal] = mapped_column(_MONEY, nullable=False, default=Decimal("0"))

    __table_args__ = (
        CheckConstraint(
            "effective_to IS NULL OR effective_to >= effective_from",
            name="salary_structure_dates_check",
        ),
        Index("ix_salary_structure_employee_from", "employee_id", "effective_from"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="salary_structures")

    def is_active_on(self, as_of_date: date) -> bool:
        """Check if the structure's validity window covers a date."""
        if self.effective_from > as_of_date:
            return False
        if self.effective_to is not None and self.effective_to < as_of_date:
            return False
        return True
