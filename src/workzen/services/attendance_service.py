"""Employee check-in / check-out."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from workzen.models import Attendance, AttendanceStatus
from workzen.repositories import AttendanceRepository, EmployeeRepository, NotFoundError
from workzen.services.attendance_reconciler import (
    DEFAULT_HALF_DAY_HOURS,
    elapsed_hours,
    hours_between,
    status_for_hours,
    to_local_naive,
)

logger = logging.getLogger(__name__)

LATE_AFTER = time(9, 30)


class AttendanceError(Exception):
    """Raised when a check-in or check-out conflicts with the current record."""

    def __init__(self, employee_id: UUID, day: date, reason: str):
        self.employee_id = employee_id
        self.day = day
        self.reason = reason
        super().__init__(f"Attendance for employee {employee_id} on {day}: {reason}")


class AttendanceService:
    def __init__(
        self,
        employees: EmployeeRepository,
        attendance: AttendanceRepository,
        half_day_hours: Decimal | int = DEFAULT_HALF_DAY_HOURS,
    ):
        self.employees = employees
        self.attendance = attendance
        self.half_day_hours = Decimal(half_day_hours)

    async def check_in(self, employee_id: UUID, now: datetime | None = None) -> Attendance:
        """Open today's attendance row; late after 09:30."""
        now = to_local_naive(now) or datetime.now()
        await self._require_employee(employee_id)

        existing = await self.attendance.get_for_employee_and_date(employee_id, now.date())
        if existing is not None:
            raise AttendanceError(employee_id, now.date(), "already checked in")

        late = now.time() > LATE_AFTER
        status = (AttendanceStatus.LATE if late else AttendanceStatus.PRESENT).value
        record = await self.attendance.create_check_in(employee_id, now.date(), now, status)
        logger.info(
            "Checked in",
            extra={"employee_id": str(employee_id), "date": now.date().isoformat(), "status": status},
        )
        return record

    async def check_out(self, employee_id: UUID, now: datetime | None = None) -> Attendance:
        """Close today's attendance row.

        Uses the same conditional write as the reconciliation job, so a
        checkout racing an imputed one cannot overwrite it.
        """
        now = to_local_naive(now) or datetime.now()
        record = await self.attendance.get_for_employee_and_date(employee_id, now.date())
        if record is None or record.check_in is None:
            raise AttendanceError(employee_id, now.date(), "not checked in")
        if record.check_out is not None:
            raise AttendanceError(employee_id, now.date(), "already checked out")

        hours = hours_between(record.check_in, now)
        status = status_for_hours(elapsed_hours(record.check_in, now), self.half_day_hours)
        if status == AttendanceStatus.PRESENT and record.status == AttendanceStatus.LATE:
            status = AttendanceStatus.LATE.value
        closed = await self.attendance.close_if_open(record.attendance_id, now, hours, status)
        if not closed:
            raise AttendanceError(employee_id, now.date(), "already checked out")

        logger.info(
            "Checked out",
            extra={
                "employee_id": str(employee_id),
                "date": now.date().isoformat(),
                "hours_worked": float(hours),
                "status": status,
            },
        )
        return await self.attendance.get_for_employee_and_date(employee_id, now.date())

    async def list_attendance(self, employee_id: UUID, start: date, end: date) -> list[Attendance]:
        await self._require_employee(employee_id)
        return await self.attendance.list_for_period(employee_id, start, end)

    async def _require_employee(self, employee_id: UUID) -> None:
        if await self.employees.get(employee_id) is None:
            raise NotFoundError("Employee", employee_id)
