"""Attendance reconciliation job - auto-checkout of incomplete records.

Runs on a schedule (see ``workzen.cli reconcile-attendance``). Every
attendance row that has a check-in but no check-out, dated today or
earlier, gets an imputed checkout at the configured hour once that hour
has passed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from workzen.calculators.types import ZERO, round_to_cents
from workzen.models.attendance import AttendanceStatus
from workzen.repositories import AttendanceRepository, OpenAttendance

logger = logging.getLogger(__name__)

DEFAULT_CHECKOUT_HOUR = 18
DEFAULT_HALF_DAY_HOURS = Decimal("4")


def to_local_naive(value: datetime | None) -> datetime | None:
    """Convert an aware datetime to naive local wall-clock time."""
    if value is None or value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def elapsed_hours(check_in: datetime, check_out: datetime) -> Decimal:
    """Elapsed hours, never negative, unrounded."""
    seconds = Decimal(str((check_out - check_in).total_seconds()))
    return max(ZERO, seconds / Decimal("3600"))


def hours_between(check_in: datetime, check_out: datetime) -> Decimal:
    """Elapsed hours rounded to 2 decimals, as stored in ``hours_worked``."""
    return round_to_cents(elapsed_hours(check_in, check_out))


def status_for_hours(hours: Decimal, half_day_hours: Decimal = DEFAULT_HALF_DAY_HOURS) -> str:
    """present at or above the half-day threshold, half_day below it.

    Pass unrounded hours: 3.9972 is a half day even though it stores as 4.00.
    """
    if hours >= half_day_hours:
        return AttendanceStatus.PRESENT.value
    return AttendanceStatus.HALF_DAY.value


@dataclass
class ReconciliationEntry:
    employee_id: str
    date: date
    hours_worked: Decimal
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "date": self.date.isoformat(),
            "hours_worked": float(self.hours_worked),
            "status": self.status,
        }


@dataclass
class ReconciliationResult:
    """Result of a reconciliation run."""

    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    entries: list[ReconciliationEntry] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "updated": self.updated}


class AttendanceReconciler:
    """Imputes checkouts for attendance rows left open.

    For each row with check_in set and check_out null:
    1. checkout = the row's date at ``checkout_hour``:00
    2. skip if the row is today's and the checkout time has not passed
    3. hours = checkout - check_in; status by the half-day threshold
    4. conditional write, only while check_out is still null

    A conditional write that affects no row means someone checked out in
    the meantime; it is counted as skipped. Any other per-row failure is
    logged and counted, and the batch continues.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        checkout_hour: int = DEFAULT_CHECKOUT_HOUR,
        half_day_hours: Decimal | int = DEFAULT_HALF_DAY_HOURS,
    ):
        if not 0 <= checkout_hour <= 23:
            raise ValueError(f"checkout_hour must be between 0 and 23, got {checkout_hour}")
        self.attendance = attendance
        self.checkout_hour = checkout_hour
        self.half_day_hours = Decimal(half_day_hours)

    def checkout_for(self, day: date) -> datetime:
        return datetime.combine(day, time(hour=self.checkout_hour))

    async def reconcile_incomplete(self, now: datetime | None = None) -> ReconciliationResult:
        """Run one reconciliation pass.

        Args:
            now: Local wall-clock time of the run (defaults to the current time)

        Returns:
            ReconciliationResult with counts and the rows that were closed
        """
        now = to_local_naive(now) or datetime.now()
        result = ReconciliationResult()

        records: list[OpenAttendance] = await self.attendance.list_incomplete(now.date())
        result.processed = len(records)

        for record in records:
            checkout = self.checkout_for(record.date)
            if record.date == now.date() and now < checkout:
                result.skipped += 1
                continue

            worked = elapsed_hours(record.check_in, checkout)
            hours = round_to_cents(worked)
            status = status_for_hours(worked, self.half_day_hours)
            employee_id = str(record.employee_id)

            try:
                closed = await self.attendance.close_if_open(
                    record.attendance_id, checkout, hours, status
                )
            except Exception:
                logger.exception(
                    "Auto-checkout failed for attendance %s (employee %s, %s)",
                    record.attendance_id,
                    employee_id,
                    record.date,
                )
                result.failed += 1
                continue

            if not closed:
                logger.info(
                    "Attendance %s already checked out, skipping",
                    record.attendance_id,
                    extra={"employee_id": employee_id, "date": record.date.isoformat()},
                )
                result.skipped += 1
                continue

            entry = ReconciliationEntry(employee_id, record.date, hours, status)
            result.entries.append(entry)
            result.updated += 1
            logger.info("Auto-checkout imputed", extra=entry.to_dict())

        logger.info(
            "Attendance reconciliation finished",
            extra={
                "processed": result.processed,
                "updated": result.updated,
                "skipped": result.skipped,
                "failed": result.failed,
            },
        )
        return result
