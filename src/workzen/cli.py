"""WorkZen Command Line Interface.

Operational tools for:
- Attendance reconciliation (cron entry point)
- Payrun processing
- Schema creation for development databases

Usage:
    python -m workzen.cli reconcile-attendance [--now 2024-01-15T19:00:00]
    python -m workzen.cli process-payrun --payrun-id X
    python -m workzen.cli create-schema
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import UUID

from workzen.config import get_settings
from workzen.database import close_db, get_session, init_db
from workzen.logging_config import configure_logging
from workzen.models import Base
from workzen.repositories import (
    SqlAttendanceRepository,
    SqlEmployeeRepository,
    SqlLeaveRepository,
    SqlPayrollSettingsRepository,
    SqlPayrunRepository,
    SqlSalaryStructureRepository,
)
from workzen.services import AttendanceReconciler, PayrunService
from workzen.services.attendance_reconciler import to_local_naive

logger = logging.getLogger(__name__)


def parse_datetime(s: str) -> datetime:
    """Parse an ISO datetime string as naive local time."""
    return to_local_naive(datetime.fromisoformat(s))


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def _print_json(data: dict[str, Any]) -> None:
    print(json.dumps(data, default=str, indent=2))


class WorkZenCli:
    """WorkZen Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m workzen.cli",
            description="WorkZen payroll operational tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: $DATABASE_URL)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        reconcile = subparsers.add_parser(
            "reconcile-attendance",
            help="Impute checkouts for attendance left open",
        )
        reconcile.add_argument(
            "--now",
            type=parse_datetime,
            help="Run as if at this local time (ISO format, default: now)",
        )

        process = subparsers.add_parser(
            "process-payrun",
            help="Generate payslips for a draft payrun",
        )
        process.add_argument(
            "--payrun-id",
            type=parse_uuid,
            required=True,
            help="Payrun to process",
        )

        subparsers.add_parser(
            "create-schema",
            help="Create all tables (development databases only)",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        settings = get_settings()
        configure_logging(settings.log_level, settings.log_format)

        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "reconcile-attendance": self._cmd_reconcile_attendance,
            "process-payrun": self._cmd_process_payrun,
            "create-schema": self._cmd_create_schema,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        return asyncio.run(self._with_database(handler, parsed))

    async def _with_database(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        init_db(args.database_url)
        try:
            return await handler(args)
        finally:
            await close_db()

    async def _cmd_reconcile_attendance(self, args: argparse.Namespace) -> int:
        """Run one auto-checkout pass."""
        settings = get_settings()
        async with get_session() as session:
            reconciler = AttendanceReconciler(
                SqlAttendanceRepository(session),
                checkout_hour=settings.auto_checkout_hour,
                half_day_hours=settings.half_day_hours,
            )
            result = await reconciler.reconcile_incomplete(args.now)

        _print_json(
            {
                **result.to_dict(),
                "skipped": result.skipped,
                "failed": result.failed,
                "entries": [entry.to_dict() for entry in result.entries],
            }
        )
        return 0 if result.success else 1

    async def _cmd_process_payrun(self, args: argparse.Namespace) -> int:
        """Process a payrun and print the outcome."""
        async with get_session() as session:
            service = PayrunService(
                payruns=SqlPayrunRepository(session),
                employees=SqlEmployeeRepository(session),
                structures=SqlSalaryStructureRepository(session),
                attendance=SqlAttendanceRepository(session),
                leaves=SqlLeaveRepository(session),
                settings=SqlPayrollSettingsRepository(session),
            )
            result = await service.process_payrun(args.payrun_id)

        _print_json(result.to_dict())
        return 0 if result.success else 1

    async def _cmd_create_schema(self, args: argparse.Namespace) -> int:
        """Create every table from the ORM metadata."""
        engine, _ = init_db(args.database_url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("Schema created.")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = WorkZenCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
