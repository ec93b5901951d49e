"""Payroll computation: salary components, structure resolution, payslips."""

from workzen.calculators.payslip_assembler import PayableDaysPolicy, PayslipAssembler
from workzen.calculators.salary_calculator import ComponentValidationError, SalaryComponentCalculator
from workzen.calculators.structure_resolver import ConfigurationError, SalaryStructureResolver
from workzen.calculators.types import PayslipBreakdown, SalaryComponents, WorkedDaysBreakdown

__all__ = [
    "ComponentValidationError",
    "ConfigurationError",
    "PayableDaysPolicy",
    "PayslipAssembler",
    "PayslipBreakdown",
    "SalaryComponentCalculator",
    "SalaryComponents",
    "SalaryStructureResolver",
    "WorkedDaysBreakdown",
]
