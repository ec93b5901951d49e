"""Payrun service - orchestrates payslip generation and validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from workzen.calculators import (
    ComponentValidationError,
    ConfigurationError,
    PayslipAssembler,
    PayslipBreakdown,
    SalaryStructureResolver,
)
from workzen.calculators.types import ZERO
from workzen.models import Employee, Payrun, PayrollSettings, Payslip
from workzen.repositories import (
    AttendanceRepository,
    EmployeeRepository,
    LeaveRepository,
    NotFoundError,
    PayrollSettingsRepository,
    PayrunRepository,
    SalaryStructureRepository,
)
from workzen.services.state_machine import (
    InvalidTransitionError,
    PayrunStateMachine,
    PayrunStatus,
    PayslipLockedError,
    PayslipStateMachine,
    PayslipStatus,
)

logger = logging.getLogger(__name__)


class PayrunValidationError(ValueError):
    """Raised when a payrun is created with an invalid period."""


@dataclass
class PayrunProcessResult:
    """Result of processing an entire payrun."""

    payrun_id: UUID
    status: str
    payslips_created: int = 0
    total_amount: Decimal = ZERO
    errors: dict[UUID, str] = field(default_factory=dict)  # employee_id -> message

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "payrunId": str(self.payrun_id),
            "status": self.status,
            "payslipsCreated": self.payslips_created,
            "totalAmount": self.total_amount,
            "errors": {str(k): v for k, v in self.errors.items()},
        }


class PayrunService:
    """Service for managing the payrun lifecycle.

    Operations:
    - create_payrun: Open a draft payrun for a pay period
    - process_payrun: Generate one computed payslip per active employee
    - update_payslip: Manual adjustments while the payslip is editable
    - validate_payslip / validate_all: Lock payslips; the payrun completes
      once every payslip is validated
    """

    def __init__(
        self,
        payruns: PayrunRepository,
        employees: EmployeeRepository,
        structures: SalaryStructureRepository,
        attendance: AttendanceRepository,
        leaves: LeaveRepository,
        settings: PayrollSettingsRepository,
        assembler: PayslipAssembler | None = None,
    ):
        self.payruns = payruns
        self.employees = employees
        self.attendance = attendance
        self.leaves = leaves
        self.settings = settings
        self.resolver = SalaryStructureResolver(structures)
        self.assembler = assembler or PayslipAssembler()

    async def create_payrun(
        self,
        name: str,
        pay_period_start: date,
        pay_period_end: date,
        pay_date: date,
    ) -> Payrun:
        if pay_period_end < pay_period_start:
            raise PayrunValidationError(
                f"Pay period end {pay_period_end} is before start {pay_period_start}"
            )
        payrun = Payrun(
            name=name,
            pay_period_start=pay_period_start,
            pay_period_end=pay_period_end,
            pay_date=pay_date,
            status=PayrunStatus.DRAFT.value,
            total_employees=0,
            total_amount=ZERO,
        )
        return await self.payruns.add_payrun(payrun)

    async def get_payrun(self, payrun_id: UUID) -> Payrun:
        payrun = await self.payruns.get_payrun(payrun_id)
        if payrun is None:
            raise NotFoundError("Payrun", payrun_id)
        return payrun

    async def get_payslip(self, payslip_id: UUID) -> Payslip:
        payslip = await self.payruns.get_payslip(payslip_id)
        if payslip is None:
            raise NotFoundError("Payslip", payslip_id)
        return payslip

    async def list_payslips(self, payrun_id: UUID) -> list[Payslip]:
        await self.get_payrun(payrun_id)
        return await self.payruns.list_payslips(payrun_id)

    async def process_payrun(self, payrun_id: UUID) -> PayrunProcessResult:
        """Generate payslips for every active employee.

        One employee's failure, expected or not, is recorded in the result
        and does not affect the others. The payrun fails when no payslip
        could be produced, or when an error outside the per-employee
        computation escapes (which re-raises).

        Raises:
            NotFoundError: If the payrun does not exist
            InvalidTransitionError: If the payrun is not a draft or already has payslips
        """
        payrun = await self.get_payrun(payrun_id)

        if await self.payruns.count_payslips(payrun_id) > 0:
            raise InvalidTransitionError(
                payrun.status, PayrunStatus.PROCESSING.value, "payrun already has payslips"
            )
        PayrunStateMachine.transition(payrun, PayrunStatus.PROCESSING)
        # Processing is durable before any employee is computed
        await self.payruns.commit()

        try:
            return await self._generate_payslips(payrun)
        except Exception:
            logger.exception("Payrun %s failed during processing", payrun_id)
            await self._mark_failed(payrun_id)
            raise

    async def update_payslip(self, payslip_id: UUID, **changes: Any) -> Payslip:
        """Apply manual earning/deduction adjustments to a payslip.

        Raises:
            PayslipLockedError: If the payslip is validated or its payrun completed
            ComponentValidationError: If a field is unknown or a value negative
        """
        payslip = await self.get_payslip(payslip_id)
        payrun = await self.get_payrun(payslip.payrun_id)
        PayslipStateMachine.ensure_editable(payslip, payrun)

        adjusted = self.assembler.adjust(self.breakdown_of(payslip), **changes)
        self._apply_breakdown(payslip, adjusted)
        await self._refresh_totals(payrun)
        await self.payruns.save()

        logger.info(
            "Payslip adjusted",
            extra={"payslip_id": str(payslip_id), "fields": sorted(changes)},
        )
        return payslip

    async def validate_payslip(self, payslip_id: UUID) -> Payslip:
        payslip = await self.get_payslip(payslip_id)
        payrun = await self.get_payrun(payslip.payrun_id)
        if PayrunStateMachine.are_results_immutable(payrun.status):
            raise PayslipLockedError(payslip_id, f"payrun is {payrun.status}")

        self._validate(payslip)
        await self.payruns.save()
        await self._complete_if_validated(payrun)
        return payslip

    async def validate_all(self, payrun_id: UUID) -> Payrun:
        """Validate every remaining payslip of a payrun, completing it."""
        payrun = await self.get_payrun(payrun_id)
        if payrun.status != PayrunStatus.PROCESSING:
            raise InvalidTransitionError(
                payrun.status, PayrunStatus.COMPLETED.value, "payrun is not processing"
            )

        for payslip in await self.payruns.list_payslips(payrun_id):
            if payslip.status != PayslipStatus.VALIDATED:
                self._validate(payslip)
        await self.payruns.save()
        await self._complete_if_validated(payrun)
        return payrun

    @staticmethod
    def breakdown_of(payslip: Payslip) -> PayslipBreakdown:
        """Rebuild the breakdown from stored payslip amounts."""
        values = {
            name: getattr(payslip, name) or ZERO
            for name in PayslipBreakdown.EARNING_FIELDS + PayslipBreakdown.DEDUCTION_FIELDS
        }
        return PayslipBreakdown(
            **values,
            gross_pay=payslip.gross_pay,
            total_deductions=payslip.total_deductions,
            net_pay=payslip.net_pay,
        )

    async def _generate_payslips(self, payrun: Payrun) -> PayrunProcessResult:
        result = PayrunProcessResult(payrun_id=payrun.payrun_id, status=payrun.status)
        settings = await self.settings.get_or_create()
        employees = await self.employees.list_active()

        payslips: list[Payslip] = []
        for employee in employees:
            try:
                payslips.append(await self._compute_payslip(employee, payrun, settings))
            except (ConfigurationError, ComponentValidationError) as e:
                logger.warning(
                    "Payslip skipped for employee %s: %s",
                    employee.employee_number,
                    e,
                    extra={"payrun_id": str(payrun.payrun_id)},
                )
                result.errors[employee.employee_id] = str(e)
            except Exception as e:
                # Catch unexpected errors
                logger.exception(
                    "Payslip computation failed for employee %s",
                    employee.employee_number,
                    extra={"payrun_id": str(payrun.payrun_id)},
                )
                result.errors[employee.employee_id] = f"Unexpected error: {e}"

        await self.payruns.add_payslips(payslips)

        payrun.total_employees = len(payslips)
        payrun.total_amount = sum((p.net_pay for p in payslips), ZERO)
        if not payslips:
            PayrunStateMachine.transition(payrun, PayrunStatus.FAILED)
        await self.payruns.save()

        result.status = payrun.status
        result.payslips_created = len(payslips)
        result.total_amount = payrun.total_amount

        logger.info(
            "Payrun processed",
            extra={
                "payrun_id": str(payrun.payrun_id),
                "status": payrun.status,
                "payslips_created": result.payslips_created,
                "errors": len(result.errors),
            },
        )
        return result

    async def _compute_payslip(
        self, employee: Employee, payrun: Payrun, settings: PayrollSettings
    ) -> Payslip:
        structure = await self.resolver.resolve(employee.employee_id, payrun.pay_period_start)
        attendance = await self.attendance.list_for_period(
            employee.employee_id, payrun.pay_period_start, payrun.pay_period_end
        )
        leaves = await self.leaves.list_approved_overlapping(
            employee.employee_id, payrun.pay_period_start, payrun.pay_period_end
        )
        breakdown = self.assembler.assemble(
            employee, payrun, attendance, leaves, settings, structure
        )

        payslip = Payslip(
            payrun_id=payrun.payrun_id,
            employee_id=employee.employee_id,
            status=PayslipStatus.DRAFT.value,
        )
        self._apply_breakdown(payslip, breakdown)
        if breakdown.worked_days is not None:
            payslip.payable_days = breakdown.worked_days.total_days
            payslip.period_days = breakdown.worked_days.period_days
        PayslipStateMachine.validate_transition(payslip.status, PayslipStatus.COMPUTED)
        payslip.status = PayslipStatus.COMPUTED.value
        payslip.computed_at = datetime.now()
        return payslip

    async def _mark_failed(self, payrun_id: UUID) -> None:
        await self.payruns.rollback()
        payrun = await self.payruns.get_payrun(payrun_id)
        if payrun is not None and PayrunStateMachine.can_transition(
            payrun.status, PayrunStatus.FAILED
        ):
            payrun.status = PayrunStatus.FAILED.value
            await self.payruns.commit()

    @staticmethod
    def _validate(payslip: Payslip) -> None:
        PayslipStateMachine.validate_transition(payslip.status, PayslipStatus.VALIDATED)
        payslip.status = PayslipStatus.VALIDATED.value
        payslip.validated_at = datetime.now()

    @staticmethod
    def _apply_breakdown(payslip: Payslip, breakdown: PayslipBreakdown) -> None:
        for name in PayslipBreakdown.EARNING_FIELDS + PayslipBreakdown.DEDUCTION_FIELDS:
            setattr(payslip, name, getattr(breakdown, name))
        payslip.gross_pay = breakdown.gross_pay
        payslip.total_deductions = breakdown.total_deductions
        payslip.net_pay = breakdown.net_pay

    async def _refresh_totals(self, payrun: Payrun) -> None:
        payslips = await self.payruns.list_payslips(payrun.payrun_id)
        payrun.total_amount = sum((p.net_pay for p in payslips), ZERO)

    async def _complete_if_validated(self, payrun: Payrun) -> None:
        payslips = await self.payruns.list_payslips(payrun.payrun_id)
        if not payslips or payrun.status != PayrunStatus.PROCESSING:
            return
        if any(p.status != PayslipStatus.VALIDATED for p in payslips):
            return

        payrun.total_amount = sum((p.net_pay for p in payslips), ZERO)
        PayrunStateMachine.transition(payrun, PayrunStatus.COMPLETED)
        await self.payruns.save()
        logger.info(
            "Payrun completed",
            extra={"payrun_id": str(payrun.payrun_id), "total_amount": str(payrun.total_amount)},
        )
