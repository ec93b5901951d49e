"""Salary structure resolution with effective-date windows."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable
from uuid import UUID

from workzen.calculators.salary_calculator import COMPONENT_RULES, SalaryComponentCalculator
from workzen.calculators.types import ZERO, SalaryComponents

if TYPE_CHECKING:
    from workzen.models import Employee, SalaryStructure
    from workzen.repositories import SalaryStructureRepository


class ConfigurationError(Exception):
    """Raised when an employee has neither a salary structure nor a flat salary."""

    def __init__(self, employee_id: UUID, as_of_date: date | None = None):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        msg = f"No salary basis for employee {employee_id}"
        if as_of_date is not None:
            msg += f" on {as_of_date}"
        super().__init__(msg + ": no salary structure and no flat salary")


class SalaryStructureResolver:
    """Finds the salary structure that applies to an employee on a date.

    Selection rule: among structures with effective_from <= as_of_date and
    (effective_to is null or effective_to >= as_of_date), the one with the
    latest effective_from wins. Overlapping windows are not rejected; the
    most recent applicable structure silently takes precedence.
    """

    def __init__(self, structures: SalaryStructureRepository):
        self.structures = structures

    async def resolve(self, employee_id: UUID, as_of_date: date) -> SalaryStructure | None:
        """Return the applicable structure, or None when the caller must fall back."""
        candidates = await self.structures.list_candidates(employee_id, as_of_date)
        return self.select_applicable(candidates, as_of_date)

    async def resolve_components(
        self, employee: Employee, as_of_date: date
    ) -> tuple[SalaryComponents, SalaryStructure | None]:
        """Resolve and convert, falling back to the default derivation."""
        structure = await self.resolve(employee.employee_id, as_of_date)
        return self.components_for(employee, structure, as_of_date), structure

    @staticmethod
    def select_applicable(
        structures: Iterable[SalaryStructure], as_of_date: date
    ) -> SalaryStructure | None:
        best: SalaryStructure | None = None
        for structure in structures:
            if not structure.is_active_on(as_of_date):
                continue
            if best is None or structure.effective_from > best.effective_from:
                best = structure
        return best

    @classmethod
    def components_for(
        cls,
        employee: Employee,
        structure: SalaryStructure | None,
        as_of_date: date | None = None,
    ) -> SalaryComponents:
        """Convert a stored structure, or derive defaults from the flat salary.

        Raises:
            ConfigurationError: If there is no structure and no positive flat salary
        """
        if structure is not None:
            return cls.structure_to_components(structure, employee.salary)

        if employee.salary is None or employee.salary <= 0:
            raise ConfigurationError(employee.employee_id, as_of_date)

        return SalaryComponentCalculator.derive_default(employee.salary)

    @staticmethod
    def structure_to_components(
        structure: SalaryStructure, fallback_wage: Decimal | None = None
    ) -> SalaryComponents:
        """Map a stored structure to a component set.

        The month wage falls back to the structure's gross, then to the
        employee's flat salary. Missing percents are derived from amounts.
        """
        month_wage = structure.month_wage or structure.gross_salary or fallback_wage or ZERO
        values: dict[str, Decimal] = {
            "month_wage": month_wage,
            "yearly_wage": structure.yearly_wage or month_wage * 12,
            "professional_tax": structure.professional_tax or ZERO,
            "tds": structure.tds or ZERO,
            "other_deductions": structure.other_deductions or ZERO,
        }
        for rule in COMPONENT_RULES:
            values[rule.amount_field] = getattr(structure, rule.amount_field) or ZERO

        basic = values["basic_salary"]
        for rule in COMPONENT_RULES:
            percent = getattr(structure, rule.percent_field)
            if percent is None:
                base = month_wage if rule.base == "wage" else basic
                percent = SalaryComponentCalculator.percent_of(values[rule.amount_field], base)
            values[rule.percent_field] = percent

        stored = SalaryComponents(**values)

        # Older rows carry a gross without an explicit fixed allowance; the gap is the fixed part.
        stored_gross = structure.gross_salary or ZERO
        if stored.fixed_allowance == 0 and stored_gross > stored.earnings_total:
            fixed = stored_gross - stored.earnings_total
            stored = replace(
                stored,
                fixed_allowance=fixed,
                fixed_allowance_percent=SalaryComponentCalculator.percent_of(fixed, month_wage),
            )
        return SalaryComponentCalculator.with_totals(stored)
