"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from workzen.config import get_settings
from workzen.database import init_db
from workzen.repositories import (
    SqlAttendanceRepository,
    SqlEmployeeRepository,
    SqlLeaveRepository,
    SqlPayrollSettingsRepository,
    SqlPayrunRepository,
    SqlSalaryStructureRepository,
)
from workzen.services import (
    AttendanceReconciler,
    AttendanceService,
    PayrollSettingsService,
    PayrunService,
    SalaryStructureService,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_payrun_service(db: DbSession) -> PayrunService:
    return PayrunService(
        payruns=SqlPayrunRepository(db),
        employees=SqlEmployeeRepository(db),
        structures=SqlSalaryStructureRepository(db),
        attendance=SqlAttendanceRepository(db),
        leaves=SqlLeaveRepository(db),
        settings=SqlPayrollSettingsRepository(db),
    )


def get_salary_structure_service(db: DbSession) -> SalaryStructureService:
    return SalaryStructureService(SqlEmployeeRepository(db), SqlSalaryStructureRepository(db))


def get_attendance_service(db: DbSession) -> AttendanceService:
    return AttendanceService(
        SqlEmployeeRepository(db),
        SqlAttendanceRepository(db),
        half_day_hours=get_settings().half_day_hours,
    )


def get_attendance_reconciler(db: DbSession) -> AttendanceReconciler:
    settings = get_settings()
    return AttendanceReconciler(
        SqlAttendanceRepository(db),
        checkout_hour=settings.auto_checkout_hour,
        half_day_hours=settings.half_day_hours,
    )


def get_settings_service(db: DbSession) -> PayrollSettingsService:
    return PayrollSettingsService(SqlPayrollSettingsRepository(db))


# Type aliases for cleaner dependency injection
PayrunServiceDep = Annotated[PayrunService, Depends(get_payrun_service)]
SalaryStructureServiceDep = Annotated[SalaryStructureService, Depends(get_salary_structure_service)]
AttendanceServiceDep = Annotated[AttendanceService, Depends(get_attendance_service)]
AttendanceReconcilerDep = Annotated[AttendanceReconciler, Depends(get_attendance_reconciler)]
SettingsServiceDep = Annotated[PayrollSettingsService, Depends(get_settings_service)]
