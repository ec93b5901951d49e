"""Salary structure editing and versioning."""

from __future__ import annotations

import logging
from dataclasses import fields
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from workzen.calculators import (
    ComponentValidationError,
    SalaryComponentCalculator,
    SalaryComponents,
    SalaryStructureResolver,
)
from workzen.models import SalaryStructure
from workzen.repositories import EmployeeRepository, NotFoundError, SalaryStructureRepository

logger = logging.getLogger(__name__)

# Matches the Numeric(9, 4) percent columns
_PERCENT_QUANTUM = Decimal("0.0001")


class SalaryStructureService:
    """Previews component edits and persists structure versions.

    Saving never mutates a historical row except to close the currently
    open window (effective_to = day before the new version starts).
    """

    def __init__(self, employees: EmployeeRepository, structures: SalaryStructureRepository):
        self.employees = employees
        self.structures = structures
        self.resolver = SalaryStructureResolver(structures)

    def preview(self, month_wage: Decimal | int | float | str) -> SalaryComponents:
        return SalaryComponentCalculator.derive_default(month_wage)

    def recompute_from_wage(
        self, current: SalaryComponents, month_wage: Decimal | int | float | str
    ) -> SalaryComponents:
        return SalaryComponentCalculator.recompute_from_wage(current, month_wage)

    def recompute_from_component(
        self, current: SalaryComponents, component: str, value: Decimal | int | float | str
    ) -> SalaryComponents:
        return SalaryComponentCalculator.recompute_from_component(current, component, value)

    async def current_components(self, employee_id: UUID, as_of_date: date) -> SalaryComponents:
        """Components in effect on a date, falling back to flat-salary defaults."""
        employee = await self.employees.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        components, _ = await self.resolver.resolve_components(employee, as_of_date)
        return components

    async def history(self, employee_id: UUID) -> list[SalaryStructure]:
        if await self.employees.get(employee_id) is None:
            raise NotFoundError("Employee", employee_id)
        return await self.structures.list_for_employee(employee_id)

    async def save_structure(
        self,
        employee_id: UUID,
        components: SalaryComponents,
        effective_from: date,
        name: str | None = None,
    ) -> SalaryStructure:
        """Insert a new structure version, closing the open one.

        Raises:
            NotFoundError: If the employee does not exist
            ComponentValidationError: If an amount is negative, a percent is
                outside [0, 100], or the new version does not start after the
                open one
        """
        if await self.employees.get(employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        SalaryComponentCalculator.validate(components)
        components = SalaryComponentCalculator.with_totals(components)

        current = await self.structures.get_open(employee_id)
        if current is not None:
            if effective_from <= current.effective_from:
                raise ComponentValidationError(
                    "effective_from",
                    effective_from.isoformat(),
                    f"must be after the current structure's start {current.effective_from}",
                )
            current.effective_to = effective_from - timedelta(days=1)

        structure = SalaryStructure(
            employee_id=employee_id,
            name=name or "Default Structure",
            effective_from=effective_from,
            effective_to=None,
            **self._columns(components),
        )
        await self.structures.add(structure)

        logger.info(
            "Salary structure saved",
            extra={
                "employee_id": str(employee_id),
                "effective_from": effective_from.isoformat(),
                "gross_salary": str(components.gross_salary),
                "superseded": str(current.salary_structure_id) if current else None,
            },
        )
        return structure

    @staticmethod
    def _columns(components: SalaryComponents) -> dict[str, Any]:
        values = {}
        for f in fields(components):
            value = getattr(components, f.name)
            if f.name.endswith("_percent"):
                value = value.quantize(_PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
            values[f.name] = value
        return values
