"""Attendance and leave models."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workzen.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from workzen.models.employee import Employee


class AttendanceStatus(str, Enum):
    """Attendance status values."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half_day"


class LeaveType(str, Enum):
    """Leave type values."""

    SICK = "sick"
    VACATION = "vacation"
    PERSONAL = "personal"
    UNPAID = "unpaid"


PAID_LEAVE_TYPES = (LeaveType.SICK, LeaveType.VACATION, LeaveType.PERSONAL)


class Attendance(Base, TimestampMixin):
    """One attendance row per employee per day.

    ``check_out`` stays null until the employee checks out or the
    reconciliation job imputes a checkout.
    """

    __tablename__ = "attendance"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    check_in: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    check_out: Mapped[dt.datetime | None] = mapped_column(nullable=True)
    hours_worked: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=AttendanceStatus.PRESENT.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="attendance_employee_date_unique"),
        CheckConstraint(
            "status IN ('present', 'absent', 'late', 'half_day')",
            name="attendance_status_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="attendances")


class Leave(Base, TimestampMixin):
    """Leave request covering an inclusive date range."""

    __tablename__ = "leave"

    leave_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint(
            "leave_type IN ('sick', 'vacation', 'personal', 'unpaid')",
            name="leave_type_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="leave_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_dates_check"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="leaves")

    @property
    def is_paid(self) -> bool:
        return self.leave_type in PAID_LEAVE_TYPES

    def covers(self, day: dt.date) -> bool:
        """Check if the leave's date range includes a day."""
        return self.start_date <= day <= self.end_date
