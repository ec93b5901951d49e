"""Organisation payroll settings."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from workzen.calculators.types import HUNDRED, ZERO, to_decimal
from workzen.models import PayrollSettings
from workzen.repositories import PayrollSettingsRepository

logger = logging.getLogger(__name__)


class SettingsValidationError(ValueError):
    """Raised when a payroll setting is out of range."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for '{field}': {reason}")


class PayrollSettingsService:
    """Reads and updates the single ``default`` settings row.

    Ranges: tax_rate and insurance_rate in [0, 100], pay_period_days in [1, 31].
    """

    def __init__(self, settings: PayrollSettingsRepository):
        self.settings = settings

    async def get(self) -> PayrollSettings:
        return await self.settings.get_or_create()

    async def update(
        self,
        tax_rate: Decimal | float | str | None = None,
        insurance_rate: Decimal | float | str | None = None,
        pay_period_days: int | None = None,
    ) -> PayrollSettings:
        # Validate everything before touching the row
        changes: dict[str, Any] = {}
        if tax_rate is not None:
            changes["tax_rate"] = self._rate("tax_rate", tax_rate)
        if insurance_rate is not None:
            changes["insurance_rate"] = self._rate("insurance_rate", insurance_rate)
        if pay_period_days is not None:
            if isinstance(pay_period_days, bool) or not isinstance(pay_period_days, int):
                raise SettingsValidationError("pay_period_days", pay_period_days, "must be an integer")
            if not 1 <= pay_period_days <= 31:
                raise SettingsValidationError("pay_period_days", pay_period_days, "must be between 1 and 31")
            changes["pay_period_days"] = pay_period_days

        settings = await self.settings.get_or_create()
        for name, value in changes.items():
            setattr(settings, name, value)
        await self.settings.save()

        if changes:
            logger.info("Payroll settings updated", extra={"fields": sorted(changes)})
        return settings

    @staticmethod
    def _rate(name: str, value: Any) -> Decimal:
        try:
            rate = to_decimal(value)
        except (ArithmeticError, ValueError, TypeError):
            raise SettingsValidationError(name, value, "not a number") from None
        if not rate.is_finite() or rate < ZERO or rate > HUNDRED:
            raise SettingsValidationError(name, value, "must be between 0 and 100")
        return rate
