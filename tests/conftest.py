"""Pytest fixtures for WorkZen payroll tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from workzen.models import (
    Attendance,
    Base,
    Employee,
    Leave,
    PayrollSettings,
    SalaryStructure,
)
from workzen.repositories import OpenAttendance

# In-memory SQLite shared across one test's connections
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Builders
# =============================================================================


def make_employee(number: str = "EMP001", salary: Decimal | None = Decimal("75000"), **kwargs: Any) -> Employee:
    """Build an unsaved employee."""
    values: dict[str, Any] = {
        "employee_id": uuid4(),
        "employee_number": number,
        "first_name": "Test",
        "last_name": number,
        "email": f"{number.lower()}@workzen.test",
        "department": "Engineering",
        "position": "Engineer",
        "hire_date": date(2023, 1, 1),
        "status": "active",
        "salary": salary,
    }
    values.update(kwargs)
    return Employee(**values)


def make_attendance(
    employee_id: UUID,
    day: date,
    check_in: datetime | None = None,
    check_out: datetime | None = None,
    hours_worked: Decimal | None = None,
    status: str = "present",
) -> Attendance:
    return Attendance(
        attendance_id=uuid4(),
        employee_id=employee_id,
        date=day,
        check_in=check_in,
        check_out=check_out,
        hours_worked=hours_worked,
        status=status,
    )


def make_leave(
    employee_id: UUID,
    leave_type: str,
    start: date,
    end: date,
    status: str = "approved",
) -> Leave:
    return Leave(
        leave_id=uuid4(),
        employee_id=employee_id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        days=(end - start).days + 1,
        status=status,
    )


def make_settings(
    tax_rate: str = "18.5", insurance_rate: str = "3.5", pay_period_days: int = 30
) -> PayrollSettings:
    return PayrollSettings(
        settings_id="default",
        tax_rate=Decimal(tax_rate),
        insurance_rate=Decimal(insurance_rate),
        pay_period_days=pay_period_days,
    )


def make_structure(employee_id: UUID, effective_from: date, effective_to: date | None = None, **amounts: Any) -> SalaryStructure:
    values: dict[str, Any] = {
        "salary_structure_id": uuid4(),
        "employee_id": employee_id,
        "name": f"Structure from {effective_from}",
        "effective_from": effective_from,
        "effective_to": effective_to,
        "basic_salary": Decimal("0"),
        "house_rent_allowance": Decimal("0"),
        "standard_allowance": Decimal("0"),
        "performance_bonus": Decimal("0"),
        "travel_allowance": Decimal("0"),
        "fixed_allowance": Decimal("0"),
        "gross_salary": Decimal("0"),
        "pf_employee": Decimal("0"),
        "pf_employer": Decimal("0"),
        "professional_tax": Decimal("0"),
        "tds": Decimal("0"),
        "other_deductions": Decimal("0"),
        "total_deductions": Decimal("0"),
        "net_salary": Decimal("0"),
    }
    values.update(amounts)
    return SalaryStructure(**values)


@pytest.fixture
def employee_factory() -> Callable[..., Employee]:
    return make_employee


@pytest.fixture
def attendance_factory() -> Callable[..., Attendance]:
    return make_attendance


@pytest.fixture
def leave_factory() -> Callable[..., Leave]:
    return make_leave


@pytest.fixture
def settings_factory() -> Callable[..., PayrollSettings]:
    return make_settings


@pytest.fixture
def structure_factory() -> Callable[..., SalaryStructure]:
    return make_structure


# =============================================================================
# In-memory repositories
# =============================================================================


class FakeSalaryStructureRepository:
    """Holds structures in a list; applies the same window filter as SQL."""

    def __init__(self, structures: list[SalaryStructure] | None = None):
        self.structures = list(structures or [])

    async def list_candidates(self, employee_id: UUID, as_of_date: date) -> list[SalaryStructure]:
        return [
            s
            for s in self.structures
            if s.employee_id == employee_id
            and s.effective_from <= as_of_date
            and (s.effective_to is None or s.effective_to >= as_of_date)
        ]

    async def list_for_employee(self, employee_id: UUID) -> list[SalaryStructure]:
        return [s for s in self.structures if s.employee_id == employee_id]

    async def get_open(self, employee_id: UUID) -> SalaryStructure | None:
        open_ = [s for s in self.structures if s.employee_id == employee_id and s.effective_to is None]
        return max(open_, key=lambda s: s.effective_from, default=None)

    async def add(self, structure: SalaryStructure) -> SalaryStructure:
        self.structures.append(structure)
        return structure


class FakeAttendanceRepository:
    """Attendance rows in memory with a scriptable conditional update.

    ``conflicts`` holds attendance ids whose conditional write should report
    zero affected rows (someone else closed them first); ``failures`` maps
    ids to an exception to raise from the write.
    """

    def __init__(self, records: list[Attendance] | None = None):
        self.records = list(records or [])
        self.conflicts: set[UUID] = set()
        self.failures: dict[UUID, Exception] = {}
        self.writes: list[UUID] = []

    async def list_incomplete(self, up_to: date) -> list[OpenAttendance]:
        return [
            OpenAttendance(r.attendance_id, r.employee_id, r.date, r.check_in)
            for r in self.records
            if r.check_in is not None and r.check_out is None and r.date <= up_to
        ]

    async def list_for_period(self, employee_id: UUID, start: date, end: date) -> list[Attendance]:
        return [r for r in self.records if r.employee_id == employee_id and start <= r.date <= end]

    async def get_for_employee_and_date(self, employee_id: UUID, day: date) -> Attendance | None:
        return next(
            (r for r in self.records if r.employee_id == employee_id and r.date == day),
            None,
        )

    async def create_check_in(
        self, employee_id: UUID, day: date, check_in: datetime, status: str
    ) -> Attendance:
        record = make_attendance(employee_id, day, check_in=check_in, status=status)
        self.records.append(record)
        return record

    async def close_if_open(
        self,
        attendance_id: UUID,
        check_out: datetime,
        hours_worked: Decimal,
        status: str,
    ) -> bool:
        self.writes.append(attendance_id)
        if attendance_id in self.failures:
            raise self.failures[attendance_id]
        if attendance_id in self.conflicts:
            return False
        record = next(r for r in self.records if r.attendance_id == attendance_id)
        if record.check_out is not None:
            return False
        record.check_out = check_out
        record.hours_worked = hours_worked
        record.status = status
        return True


@pytest.fixture
def structure_repo() -> FakeSalaryStructureRepository:
    return FakeSalaryStructureRepository()


@pytest.fixture
def attendance_repo() -> FakeAttendanceRepository:
    return FakeAttendanceRepository()
