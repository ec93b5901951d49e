"""Employee model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from workzen.models.attendance import Attendance, Leave
    from workzen.models.salary import SalaryStructure


class Employee(Base, TimestampMixin):
    """Employee record.

    ``salary`` is the flat monthly wage, used only when the employee has no
    applicable salary structure. Employees are never deleted, only moved to
    ``inactive`` or ``terminated``.
    """

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    department: Mapped[str | None] = mapped_column(String, nullable=True)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'terminated')",
            name="employee_status_check",
        ),
    )

    # Relationships
    salary_structures: Mapped[list[SalaryStructure]] = relationship(back_populates="employee")
    attendances: Mapped[list[Attendance]] = relationship(back_populates="employee")
    leaves: Mapped[list[Leave]] = relationship(back_populates="employee")
