"""Salary component calculator with bidirectional amount/percent cascade."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any

from workzen.calculators.types import (
    HUNDRED,
    PAYLOAD_TO_FIELD,
    ZERO,
    SalaryComponents,
    round_to_cents,
    to_decimal,
)


class ComponentValidationError(ValueError):
    """Raised when an edit carries a negative amount or an out-of-range percent."""

    def __init__(self, component: str, value: Any, reason: str):
        self.component = component
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for '{component}': {reason}")


@dataclass(frozen=True)
class ComponentRule:
    """An amount/percent pair and the base its percent is relative to."""

    amount_field: str
    percent_field: str
    base: str  # "wage" or "basic"


COMPONENT_RULES: tuple[ComponentRule, ...] = (
    ComponentRule("basic_salary", "basic_salary_percent", "wage"),
    ComponentRule("house_rent_allowance", "hra_percent", "basic"),
    ComponentRule("standard_allowance", "standard_allowance_percent", "wage"),
    ComponentRule("performance_bonus", "performance_bonus_percent", "basic"),
    ComponentRule("travel_allowance", "lta_percent", "basic"),
    ComponentRule("fixed_allowance", "fixed_allowance_percent", "wage"),
    ComponentRule("pf_employee", "pf_employee_percent", "basic"),
    ComponentRule("pf_employer", "pf_employer_percent", "basic"),
)

_RULES_BY_FIELD: dict[str, ComponentRule] = {}
for _rule in COMPONENT_RULES:
    _RULES_BY_FIELD[_rule.amount_field] = _rule
    _RULES_BY_FIELD[_rule.percent_field] = _rule

FLAT_FIELDS = frozenset({"professional_tax", "tds", "other_deductions"})

# Earnings that follow basic salary at their own percent.
BASIC_DEPENDENTS = (
    "house_rent_allowance",
    "performance_bonus",
    "travel_allowance",
    "pf_employee",
    "pf_employer",
)

# Earnings whose edit shifts the fixed-allowance residual.
RESIDUAL_INPUTS = frozenset(
    {"house_rent_allowance", "standard_allowance", "performance_bonus", "travel_allowance"}
)


class SalaryComponentCalculator:
    """Derives and edits salary component sets.

    Bases:
    - month wage: basic salary, standard allowance, fixed allowance
    - basic salary: HRA, performance bonus, LTA, PF employee, PF employer

    Cascade:
    - amount edit -> percent re-derived against the base
    - percent edit -> amount re-derived from the base
    - month wage or basic salary edit -> basic dependents follow at their
      existing percents, then fixed allowance becomes the residual
      max(0, wage - (basic + HRA + standard + bonus + LTA))

    All amounts are rounded to cents; percents keep full precision so that
    amount -> percent -> amount conversions are stable.
    """

    DEFAULT_BASIC_PERCENT = Decimal("50")
    DEFAULT_HRA_PERCENT = Decimal("50")
    DEFAULT_STANDARD_PERCENT = Decimal("16.67")
    DEFAULT_BONUS_PERCENT = Decimal("8.33")
    DEFAULT_LTA_PERCENT = Decimal("8.33")
    DEFAULT_FIXED_PERCENT = Decimal("11.67")
    DEFAULT_PF_PERCENT = Decimal("12")
    DEFAULT_PROFESSIONAL_TAX = Decimal("200")

    @classmethod
    def derive_default(cls, month_wage: Decimal | int | float | str) -> SalaryComponents:
        """Build the default component set from a flat monthly wage."""
        wage = cls.validate_amount("month_wage", month_wage)

        basic = cls.amount_from_percent(wage, cls.DEFAULT_BASIC_PERCENT)
        components = SalaryComponents(
            month_wage=round_to_cents(wage),
            basic_salary=basic,
            basic_salary_percent=cls.DEFAULT_BASIC_PERCENT,
            house_rent_allowance=cls.amount_from_percent(basic, cls.DEFAULT_HRA_PERCENT),
            hra_percent=cls.DEFAULT_HRA_PERCENT,
            standard_allowance=cls.amount_from_percent(wage, cls.DEFAULT_STANDARD_PERCENT),
            standard_allowance_percent=cls.DEFAULT_STANDARD_PERCENT,
            performance_bonus=cls.amount_from_percent(basic, cls.DEFAULT_BONUS_PERCENT),
            performance_bonus_percent=cls.DEFAULT_BONUS_PERCENT,
            travel_allowance=cls.amount_from_percent(basic, cls.DEFAULT_LTA_PERCENT),
            lta_percent=cls.DEFAULT_LTA_PERCENT,
            fixed_allowance=cls.amount_from_percent(wage, cls.DEFAULT_FIXED_PERCENT),
            fixed_allowance_percent=cls.DEFAULT_FIXED_PERCENT,
            pf_employee=cls.amount_from_percent(basic, cls.DEFAULT_PF_PERCENT),
            pf_employee_percent=cls.DEFAULT_PF_PERCENT,
            pf_employer=cls.amount_from_percent(basic, cls.DEFAULT_PF_PERCENT),
            pf_employer_percent=cls.DEFAULT_PF_PERCENT,
            professional_tax=cls.DEFAULT_PROFESSIONAL_TAX,
        )
        return cls.with_totals(components)

    @classmethod
    def recompute_from_wage(
        cls,
        current: SalaryComponents,
        new_month_wage: Decimal | int | float | str,
    ) -> SalaryComponents:
        """Apply a new monthly wage, keeping every percent except fixed allowance's."""
        wage = round_to_cents(cls.validate_amount("month_wage", new_month_wage))

        updated = replace(
            current,
            month_wage=wage,
            basic_salary=cls.amount_from_percent(wage, current.basic_salary_percent),
            standard_allowance=cls.amount_from_percent(wage, current.standard_allowance_percent),
        )
        updated = cls._cascade_from_basic(updated)
        return cls.with_totals(updated)

    @classmethod
    def recompute_from_component(
        cls,
        current: SalaryComponents,
        component: str,
        value: Decimal | int | float | str,
    ) -> SalaryComponents:
        """Apply an edit to one amount or percent field.

        ``component`` may be a snake_case field name (``hra_percent``) or its
        payload name (``hraPercent``).
        """
        name = PAYLOAD_TO_FIELD.get(component, component)

        if name == "month_wage":
            return cls.recompute_from_wage(current, value)

        if name == "yearly_wage":
            yearly = cls.validate_amount(name, value)
            return cls.recompute_from_wage(current, yearly / 12)

        if name in FLAT_FIELDS:
            amount = round_to_cents(cls.validate_amount(name, value))
            return cls.with_totals(replace(current, **{name: amount}))

        rule = _RULES_BY_FIELD.get(name)
        if rule is None:
            raise ComponentValidationError(name, value, "unknown salary component")

        base = current.month_wage if rule.base == "wage" else current.basic_salary
        if name == rule.percent_field:
            percent = cls.validate_percent(name, value)
            amount = cls.amount_from_percent(base, percent)
        else:
            amount = round_to_cents(cls.validate_amount(name, value))
            percent = cls.percent_of(amount, base)
            if percent > HUNDRED:
                raise ComponentValidationError(name, value, f"exceeds its base {base}")

        updated = replace(current, **{rule.amount_field: amount, rule.percent_field: percent})

        if rule.amount_field == "basic_salary":
            updated = cls._cascade_from_basic(updated)
        elif rule.amount_field in RESIDUAL_INPUTS:
            updated = cls._apply_fixed_residual(updated)

        return cls.with_totals(updated)

    @classmethod
    def with_totals(cls, components: SalaryComponents) -> SalaryComponents:
        """Recompute yearly wage, gross, total deductions and net."""
        gross = components.earnings_total
        total_deductions = (
            components.pf_employee
            + components.professional_tax
            + components.tds
            + components.other_deductions
        )
        net = gross - total_deductions if gross > 0 else ZERO
        return replace(
            components,
            yearly_wage=components.month_wage * 12,
            gross_salary=gross,
            total_deductions=total_deductions,
            net_salary=max(ZERO, net),
        )

    @staticmethod
    def amount_from_percent(base: Decimal, percent: Decimal) -> Decimal:
        return round_to_cents(base * percent / HUNDRED)

    @staticmethod
    def percent_of(amount: Decimal, base: Decimal) -> Decimal:
        if base == 0:
            return ZERO
        return amount * HUNDRED / base

    @classmethod
    def _cascade_from_basic(cls, components: SalaryComponents) -> SalaryComponents:
        """Re-derive basic dependents from their percents, then the residual."""
        basic = components.basic_salary
        changes = {}
        for amount_field in BASIC_DEPENDENTS:
            rule = _RULES_BY_FIELD[amount_field]
            changes[amount_field] = cls.amount_from_percent(
                basic, getattr(components, rule.percent_field)
            )
        return cls._apply_fixed_residual(replace(components, **changes))

    @classmethod
    def _apply_fixed_residual(cls, components: SalaryComponents) -> SalaryComponents:
        allocated = (
            components.basic_salary
            + components.house_rent_allowance
            + components.standard_allowance
            + components.performance_bonus
            + components.travel_allowance
        )
        # Negative residuals are clamped; the shortfall is not redistributed.
        fixed = max(ZERO, components.month_wage - allocated)
        return replace(
            components,
            fixed_allowance=fixed,
            fixed_allowance_percent=cls.percent_of(fixed, components.month_wage),
        )

    @classmethod
    def validate(cls, components: SalaryComponents) -> SalaryComponents:
        """Check a component set that did not come from this calculator.

        Raises:
            ComponentValidationError: On the first negative amount or percent
                outside [0, 100]
        """
        for f in fields(components):
            value = getattr(components, f.name)
            if f.name.endswith("_percent"):
                cls.validate_percent(f.name, value)
            else:
                cls.validate_amount(f.name, value)
        return components

    @staticmethod
    def validate_amount(component: str, value: Any) -> Decimal:
        try:
            amount = to_decimal(value)
        except (ArithmeticError, ValueError, TypeError):
            raise ComponentValidationError(component, value, "not a number") from None
        if not amount.is_finite():
            raise ComponentValidationError(component, value, "not a finite number")
        if amount < 0:
            raise ComponentValidationError(component, value, "amount cannot be negative")
        return amount

    @staticmethod
    def validate_percent(component: str, value: Any) -> Decimal:
        try:
            percent = to_decimal(value)
        except (ArithmeticError, ValueError, TypeError):
            raise ComponentValidationError(component, value, "not a number") from None
        if not percent.is_finite():
            raise ComponentValidationError(component, value, "not a finite number")
        if percent < 0 or percent > 100:
            raise ComponentValidationError(component, value, "percent must be between 0 and 100")
        return percent
