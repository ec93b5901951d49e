"""Persistence contracts and their SQLAlchemy implementations.

Calculators and services depend on the ``Protocol`` classes only; the
``Sql*`` classes bind them to an ``AsyncSession``. Repositories flush but do
not commit. Two exceptions: ``SqlAttendanceRepository.close_if_open``
commits each imputed checkout on its own so that one failed row cannot roll
back the others, and ``SqlPayrunRepository.commit`` lets the payrun service
persist status changes that must survive a failed computation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol, Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.models import (
    Attendance,
    Employee,
    Leave,
    Payrun,
    PayrollSettings,
    Payslip,
    SalaryStructure,
)


class NotFoundError(LookupError):
    """Raised when a requested record does not exist."""

    def __init__(self, entity: str, identifier: object):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


@dataclass(frozen=True)
class OpenAttendance:
    """Snapshot of an attendance row that is checked in but not out.

    Plain values rather than an ORM instance, so a rollback of one row's
    write leaves the rest of a batch readable.
    """

    attendance_id: UUID
    employee_id: UUID
    date: date
    check_in: datetime


# ===== Contracts =====


class EmployeeRepository(Protocol):
    async def get(self, employee_id: UUID) -> Employee | None: ...

    async def list_active(self) -> list[Employee]: ...


class SalaryStructureRepository(Protocol):
    async def list_candidates(self, employee_id: UUID, as_of_date: date) -> list[SalaryStructure]: ...

    async def list_for_employee(self, employee_id: UUID) -> list[SalaryStructure]: ...

    async def get_open(self, employee_id: UUID) -> SalaryStructure | None: ...

    async def add(self, structure: SalaryStructure) -> SalaryStructure: ...


class AttendanceRepository(Protocol):
    async def list_incomplete(self, up_to: date) -> list[OpenAttendance]: ...

    async def list_for_period(self, employee_id: UUID, start: date, end: date) -> list[Attendance]: ...

    async def get_for_employee_and_date(self, employee_id: UUID, day: date) -> Attendance | None: ...

    async def create_check_in(
        self, employee_id: UUID, day: date, check_in: datetime, status: str
    ) -> Attendance: ...

    async def close_if_open(
        self,
        attendance_id: UUID,
        check_out: datetime,
        hours_worked: Decimal,
        status: str,
    ) -> bool: ...


class LeaveRepository(Protocol):
    async def list_approved_overlapping(self, employee_id: UUID, start: date, end: date) -> list[Leave]: ...


class PayrunRepository(Protocol):
    async def get_payrun(self, payrun_id: UUID) -> Payrun | None: ...

    async def add_payrun(self, payrun: Payrun) -> Payrun: ...

    async def get_payslip(self, payslip_id: UUID) -> Payslip | None: ...

    async def list_payslips(self, payrun_id: UUID) -> list[Payslip]: ...

    async def count_payslips(self, payrun_id: UUID) -> int: ...

    async def add_payslips(self, payslips: Sequence[Payslip]) -> None: ...

    async def save(self) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class PayrollSettingsRepository(Protocol):
    async def get_or_create(self) -> PayrollSettings: ...

    async def save(self) -> None: ...


# ===== SQLAlchemy implementations =====


class SqlEmployeeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, employee_id: UUID) -> Employee | None:
        return await self.session.get(Employee, employee_id)

    async def list_active(self) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.status == "active")
            .order_by(Employee.employee_number)
        )
        return list(result.scalars().all())


class SqlSalaryStructureRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_candidates(self, employee_id: UUID, as_of_date: date) -> list[SalaryStructure]:
        """Structures whose validity window covers the date, newest first."""
        result = await self.session.execute(
            select(SalaryStructure)
            .where(
                SalaryStructure.employee_id == employee_id,
                SalaryStructure.effective_from <= as_of_date,
                (
                    SalaryStructure.effective_to.is_(None)
                    | (SalaryStructure.effective_to >= as_of_date)
                ),
            )
            .order_by(SalaryStructure.effective_from.desc())
        )
        return list(result.scalars().all())

    async def list_for_employee(self, employee_id: UUID) -> list[SalaryStructure]:
        result = await self.session.execute(
            select(SalaryStructure)
            .where(SalaryStructure.employee_id == employee_id)
            .order_by(SalaryStructure.effective_from.desc())
        )
        return list(result.scalars().all())

    async def get_open(self, employee_id: UUID) -> SalaryStructure | None:
        result = await self.session.execute(
            select(SalaryStructure)
            .where(
                SalaryStructure.employee_id == employee_id,
                SalaryStructure.effective_to.is_(None),
            )
            .order_by(SalaryStructure.effective_from.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def add(self, structure: SalaryStructure) -> SalaryStructure:
        self.session.add(structure)
        await self.session.flush()
        return structure


class SqlAttendanceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_incomplete(self, up_to: date) -> list[OpenAttendance]:
        """Rows checked in but not out, dated on or before ``up_to``."""
        result = await self.session.execute(
            select(
                Attendance.attendance_id,
                Attendance.employee_id,
                Attendance.date,
                Attendance.check_in,
            )
            .where(
                Attendance.check_in.is_not(None),
                Attendance.check_out.is_(None),
                Attendance.date <= up_to,
            )
            .order_by(Attendance.date, Attendance.employee_id)
        )
        return [OpenAttendance(*row) for row in result.all()]

    async def list_for_period(self, employee_id: UUID, start: date, end: date) -> list[Attendance]:
        result = await self.session.execute(
            select(Attendance)
            .where(
                Attendance.employee_id == employee_id,
                Attendance.date >= start,
                Attendance.date <= end,
            )
            .order_by(Attendance.date)
        )
        return list(result.scalars().all())

    async def get_for_employee_and_date(self, employee_id: UUID, day: date) -> Attendance | None:
        result = await self.session.execute(
            select(Attendance).where(
                Attendance.employee_id == employee_id,
                Attendance.date == day,
            )
        )
        return result.scalar_one_or_none()

    async def create_check_in(
        self, employee_id: UUID, day: date, check_in: datetime, status: str
    ) -> Attendance:
        attendance = Attendance(
            employee_id=employee_id,
            date=day,
            check_in=check_in,
            status=status,
        )
        self.session.add(attendance)
        await self.session.flush()
        return attendance

    async def close_if_open(
        self,
        attendance_id: UUID,
        check_out: datetime,
        hours_worked: Decimal,
        status: str,
    ) -> bool:
        """Set the checkout only while ``check_out`` is still null.

        Returns False when the row was closed concurrently (0 rows affected).
        """
        try:
            result = await self.session.execute(
                update(Attendance)
                .where(
                    Attendance.attendance_id == attendance_id,
                    Attendance.check_out.is_(None),
                )
                .values(
                    check_out=check_out,
                    hours_worked=hours_worked,
                    status=status,
                )
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return result.rowcount > 0


class SqlLeaveRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_approved_overlapping(self, employee_id: UUID, start: date, end: date) -> list[Leave]:
        result = await self.session.execute(
            select(Leave).where(
                Leave.employee_id == employee_id,
                Leave.status == "approved",
                Leave.start_date <= end,
                Leave.end_date >= start,
            )
        )
        return list(result.scalars().all())


class SqlPayrunRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_payrun(self, payrun_id: UUID) -> Payrun | None:
        return await self.session.get(Payrun, payrun_id)

    async def add_payrun(self, payrun: Payrun) -> Payrun:
        self.session.add(payrun)
        await self.session.flush()
        return payrun

    async def get_payslip(self, payslip_id: UUID) -> Payslip | None:
        return await self.session.get(Payslip, payslip_id)

    async def list_payslips(self, payrun_id: UUID) -> list[Payslip]:
        result = await self.session.execute(
            select(Payslip).where(Payslip.payrun_id == payrun_id)
        )
        return list(result.scalars().all())

    async def count_payslips(self, payrun_id: UUID) -> int:
        count = await self.session.scalar(
            select(func.count()).select_from(Payslip).where(Payslip.payrun_id == payrun_id)
        )
        return int(count or 0)

    async def add_payslips(self, payslips: Sequence[Payslip]) -> None:
        self.session.add_all(payslips)
        await self.session.flush()

    async def save(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


class SqlPayrollSettingsRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_create(self) -> PayrollSettings:
        settings = await self.session.get(PayrollSettings, "default")
        if settings is None:
            settings = PayrollSettings(
                settings_id="default",
                tax_rate=Decimal("18.5"),
                insurance_rate=Decimal("3.5"),
                pay_period_days=30,
            )
            self.session.add(settings)
            await self.session.flush()
        return settings

    async def save(self) -> None:
        await self.session.flush()
