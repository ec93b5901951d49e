"""Tests for the payrun lifecycle against SQLite."""

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import uuid4

import pytest
import pytest_asyncio

from workzen.calculators import ComponentValidationError, PayslipAssembler
from workzen.models import Payrun
from workzen.repositories import (
    NotFoundError,
    SqlAttendanceRepository,
    SqlEmployeeRepository,
    SqlLeaveRepository,
    SqlPayrollSettingsRepository,
    SqlPayrunRepository,
    SqlSalaryStructureRepository,
)
from workzen.services import (
    InvalidTransitionError,
    PayrunService,
    PayrunValidationError,
    PayslipLockedError,
)

pytestmark = pytest.mark.asyncio


def make_service(session, assembler=None, payruns=None) -> PayrunService:
    return PayrunService(
        payruns=payruns or SqlPayrunRepository(session),
        employees=SqlEmployeeRepository(session),
        structures=SqlSalaryStructureRepository(session),
        attendance=SqlAttendanceRepository(session),
        leaves=SqlLeaveRepository(session),
        settings=SqlPayrollSettingsRepository(session),
        assembler=assembler,
    )


class ExplodingAssembler(PayslipAssembler):
    """Fails for one employee with an error the service does not expect."""

    def __init__(self, employee_number: str):
        super().__init__()
        self.employee_number = employee_number

    def assemble(self, employee, *args, **kwargs):
        if employee.employee_number == self.employee_number:
            raise InvalidOperation("corrupt stored amount")
        return super().assemble(employee, *args, **kwargs)


class FailingPayrunRepository(SqlPayrunRepository):
    """Cannot store payslips."""

    async def add_payslips(self, payslips):
        raise RuntimeError("disk full")


@pytest_asyncio.fixture(scope="function")
async def employees(session, employee_factory):
    """Three active employees (one without any salary basis) and one inactive."""
    staff = {
        "flat": employee_factory("EMP001", salary=Decimal("75000")),
        "unpaid": employee_factory("EMP002", salary=None),
        "structured": employee_factory("EMP003", salary=None),
        "inactive": employee_factory("EMP004", salary=Decimal("50000"), status="inactive"),
    }
    session.add_all(staff.values())
    await session.commit()
    return staff


@pytest_asyncio.fixture(scope="function")
async def structure(session, employees, structure_factory):
    structure = structure_factory(
        employees["structured"].employee_id,
        date(2023, 6, 1),
        month_wage=Decimal("40000"),
        basic_salary=Decimal("20000"),
        house_rent_allowance=Decimal("10000"),
        fixed_allowance=Decimal("10000"),
        gross_salary=Decimal("40000"),
        pf_employee=Decimal("2400"),
        professional_tax=Decimal("200"),
    )
    session.add(structure)
    await session.commit()
    return structure


@pytest_asyncio.fixture(scope="function")
async def payrun(session) -> Payrun:
    service = make_service(session)
    payrun = await service.create_payrun(
        "January 2024", date(2024, 1, 1), date(2024, 1, 31), date(2024, 2, 1)
    )
    await session.commit()
    return payrun


class TestCreatePayrun:
    async def test_starts_as_draft(self, payrun):
        assert payrun.status == "draft"
        assert payrun.total_employees == 0
        assert payrun.total_amount == Decimal("0")
        assert payrun.period_days == 31

    async def test_rejects_inverted_period(self, session):
        with pytest.raises(PayrunValidationError):
            await make_service(session).create_payrun(
                "Bad", date(2024, 2, 1), date(2024, 1, 1), date(2024, 2, 1)
            )

    async def test_unknown_payrun(self, session):
        with pytest.raises(NotFoundError):
            await make_service(session).get_payrun(uuid4())


class TestProcessPayrun:
    """Test payslip generation."""

    async def test_one_failure_does_not_block_others(self, session, employees, structure, payrun):
        result = await make_service(session).process_payrun(payrun.payrun_id)

        assert result.status == "processing"
        assert result.payslips_created == 2
        assert set(result.errors) == {employees["unpaid"].employee_id}
        assert not result.success

        payslips = await make_service(session).list_payslips(payrun.payrun_id)
        by_employee = {p.employee_id: p for p in payslips}
        assert set(by_employee) == {
            employees["flat"].employee_id,
            employees["structured"].employee_id,
        }
        assert all(p.status == "computed" for p in payslips)
        assert payrun.total_employees == 2
        assert payrun.total_amount == sum((p.net_pay for p in payslips), Decimal("0"))

    async def test_payslip_from_structure(self, session, employees, structure, payrun):
        await make_service(session).process_payrun(payrun.payrun_id)

        payslips = await make_service(session).list_payslips(payrun.payrun_id)
        payslip = next(p for p in payslips if p.employee_id == employees["structured"].employee_id)

        # No attendance: only the 8 weekend days of January are payable
        assert payslip.period_days == 31
        assert payslip.payable_days == Decimal("8")
        assert payslip.base_salary == Decimal("5161.29")
        assert payslip.allowances == Decimal("20000")
        assert payslip.provident_fund == Decimal("2400")
        assert payslip.gross_pay == payslip.base_salary + payslip.allowances
        assert payslip.net_pay == payslip.gross_pay - payslip.total_deductions

    async def test_no_payslips_fails_payrun(self, session, employee_factory, payrun):
        session.add(employee_factory("EMP010", salary=None))
        await session.commit()

        result = await make_service(session).process_payrun(payrun.payrun_id)

        assert result.status == "failed"
        assert result.payslips_created == 0
        assert payrun.status == "failed"

    async def test_reprocessing_rejected(self, session, employees, payrun):
        service = make_service(session)
        await service.process_payrun(payrun.payrun_id)

        with pytest.raises(InvalidTransitionError):
            await service.process_payrun(payrun.payrun_id)

    async def test_unexpected_employee_error_isolated(self, session, employees, structure, payrun, caplog):
        service = make_service(session, ExplodingAssembler("EMP001"))

        result = await service.process_payrun(payrun.payrun_id)

        assert result.status == "processing"
        assert result.payslips_created == 1
        assert set(result.errors) == {
            employees["flat"].employee_id,
            employees["unpaid"].employee_id,
        }
        assert result.errors[employees["flat"].employee_id].startswith("Unexpected error")
        assert "Payslip computation failed for employee EMP001" in caplog.text

        payslips = await service.list_payslips(payrun.payrun_id)
        assert [p.employee_id for p in payslips] == [employees["structured"].employee_id]

    async def test_storage_error_marks_failed(self, session, session_factory, employees, payrun):
        service = make_service(session, payruns=FailingPayrunRepository(session))

        with pytest.raises(RuntimeError, match="disk full"):
            await service.process_payrun(payrun.payrun_id)

        async with session_factory() as fresh:
            stored = await fresh.get(Payrun, payrun.payrun_id)
            assert stored.status == "failed"
            assert await SqlPayrunRepository(fresh).count_payslips(payrun.payrun_id) == 0

    async def test_result_to_dict(self, session, employees, payrun):
        result = await make_service(session).process_payrun(payrun.payrun_id)
        data = result.to_dict()

        assert data["payrunId"] == str(payrun.payrun_id)
        assert data["payslipsCreated"] == 1
        assert str(employees["unpaid"].employee_id) in data["errors"]


class TestPayslipEditsAndValidation:
    """Test manual edits, validation and completion."""

    @pytest_asyncio.fixture(scope="function")
    async def processed(self, session, employees, structure, payrun):
        service = make_service(session)
        await service.process_payrun(payrun.payrun_id)
        await session.commit()
        return service

    async def test_adjustment_refreshes_totals(self, processed, payrun):
        payslips = await processed.list_payslips(payrun.payrun_id)
        target = payslips[0]
        old_net = target.net_pay
        old_bonus = target.bonus

        updated = await processed.update_payslip(target.payslip_id, bonus=Decimal("1000"))

        assert updated.bonus == Decimal("1000.00")
        assert updated.net_pay == old_net + Decimal("1000.00") - old_bonus
        assert updated.gross_pay == updated.base_salary + updated.overtime + updated.bonus + updated.allowances
        assert updated.net_pay == updated.gross_pay - updated.total_deductions
        assert payrun.total_amount == sum((p.net_pay for p in payslips), Decimal("0"))

    async def test_adjustment_rejects_aggregate_fields(self, processed, payrun):
        payslips = await processed.list_payslips(payrun.payrun_id)
        with pytest.raises(ComponentValidationError):
            await processed.update_payslip(payslips[0].payslip_id, net_pay=Decimal("1"))

    async def test_validating_every_payslip_completes_payrun(self, processed, payrun):
        payslips = await processed.list_payslips(payrun.payrun_id)

        await processed.validate_payslip(payslips[0].payslip_id)
        assert payrun.status == "processing"

        await processed.validate_payslip(payslips[1].payslip_id)
        assert payrun.status == "completed"
        assert payrun.total_amount == sum((p.net_pay for p in payslips), Decimal("0"))
        assert all(p.validated_at is not None for p in payslips)

    async def test_validated_payslip_is_locked(self, processed, payrun):
        payslips = await processed.list_payslips(payrun.payrun_id)
        await processed.validate_payslip(payslips[0].payslip_id)

        with pytest.raises(PayslipLockedError):
            await processed.update_payslip(payslips[0].payslip_id, bonus=Decimal("1"))

    async def test_validate_all(self, processed, payrun):
        completed = await processed.validate_all(payrun.payrun_id)

        assert completed.status == "completed"
        payslips = await processed.list_payslips(payrun.payrun_id)
        with pytest.raises(PayslipLockedError):
            await processed.validate_payslip(payslips[0].payslip_id)

    async def test_validate_all_requires_processing(self, session, payrun):
        with pytest.raises(InvalidTransitionError):
            await make_service(session).validate_all(payrun.payrun_id)
