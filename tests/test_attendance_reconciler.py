"""Tests for the attendance auto-checkout job."""

import sqlite3
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import event, select, update

from workzen.models import Attendance
from workzen.repositories import SqlAttendanceRepository
from workzen.services.attendance_reconciler import (
    AttendanceReconciler,
    elapsed_hours,
    hours_between,
    status_for_hours,
)

pytestmark = pytest.mark.asyncio

DAY = date(2024, 1, 15)


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute)


class TestHelpers:
    async def test_hours_between(self):
        assert hours_between(at(9), at(18)) == Decimal("9.00")
        assert hours_between(at(9, 20), at(18)) == Decimal("8.67")

    async def test_checkout_before_check_in_clamps_to_zero(self):
        assert hours_between(at(19), at(18)) == Decimal("0.00")

    async def test_elapsed_hours_unrounded(self):
        assert elapsed_hours(at(9), at(18)) == Decimal("9")
        assert elapsed_hours(datetime(2024, 1, 15, 14, 0, 10), at(18)) < Decimal("4")

    @pytest.mark.parametrize(
        "hours,expected",
        [
            (Decimal("3.99"), "half_day"),
            (Decimal("4"), "present"),
            (Decimal("9"), "present"),
            (Decimal("0"), "half_day"),
        ],
    )
    async def test_status_for_hours(self, hours, expected):
        assert status_for_hours(hours) == expected

    async def test_checkout_hour_validated(self, attendance_repo):
        with pytest.raises(ValueError):
            AttendanceReconciler(attendance_repo, checkout_hour=24)


class TestReconcile:
    """Test one reconciliation pass against the in-memory repository."""

    @pytest.fixture
    def open_record(self, employee_factory, attendance_factory, attendance_repo):
        employee = employee_factory()
        record = attendance_factory(employee.employee_id, DAY, check_in=at(9))
        attendance_repo.records.append(record)
        return record

    async def test_today_skipped_before_checkout_hour(self, open_record, attendance_repo):
        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(14))

        assert result.processed == 1
        assert result.updated == 0
        assert result.skipped == 1
        assert open_record.check_out is None
        assert attendance_repo.writes == []

    async def test_today_closed_after_checkout_hour(self, open_record, attendance_repo):
        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(19))

        assert result.to_dict() == {"processed": 1, "updated": 1}
        assert open_record.check_out == at(18)
        assert open_record.hours_worked == Decimal("9.00")
        assert open_record.status == "present"
        assert result.entries[0].to_dict() == {
            "employee_id": str(open_record.employee_id),
            "date": "2024-01-15",
            "hours_worked": 9.0,
            "status": "present",
        }

    async def test_past_day_closed_any_time(self, open_record, attendance_repo):
        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(
            now=at(8, day=date(2024, 1, 16))
        )

        assert result.updated == 1
        assert open_record.check_out == at(18)

    async def test_future_rows_ignored(self, employee_factory, attendance_factory, attendance_repo):
        employee = employee_factory()
        attendance_repo.records.append(
            attendance_factory(employee.employee_id, date(2024, 1, 16), check_in=at(9, day=date(2024, 1, 16)))
        )

        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(20))

        assert result.processed == 0

    @pytest.mark.parametrize(
        "check_in_hour,hours,status",
        [(15, Decimal("3.00"), "half_day"), (14, Decimal("4.00"), "present")],
    )
    async def test_half_day_threshold(
        self, employee_factory, attendance_factory, attendance_repo, check_in_hour, hours, status
    ):
        employee = employee_factory()
        record = attendance_factory(employee.employee_id, DAY, check_in=at(check_in_hour))
        attendance_repo.records.append(record)

        await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(20))

        assert record.hours_worked == hours
        assert record.status == status

    @pytest.mark.parametrize(
        "check_in,status",
        [
            (datetime(2024, 1, 15, 14, 0, 10), "half_day"),
            (datetime(2024, 1, 15, 13, 59, 50), "present"),
        ],
    )
    async def test_threshold_decided_before_rounding(
        self, employee_factory, attendance_factory, attendance_repo, check_in, status
    ):
        employee = employee_factory()
        record = attendance_factory(employee.employee_id, DAY, check_in=check_in)
        attendance_repo.records.append(record)

        await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(20))

        # Both sides of four hours store as 4.00
        assert record.hours_worked == Decimal("4.00")
        assert record.status == status

    async def test_check_in_after_checkout_hour(self, employee_factory, attendance_factory, attendance_repo):
        employee = employee_factory()
        record = attendance_factory(employee.employee_id, DAY, check_in=at(19))
        attendance_repo.records.append(record)

        await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(23))

        assert record.hours_worked == Decimal("0.00")
        assert record.status == "half_day"

    async def test_idempotent(self, open_record, attendance_repo):
        reconciler = AttendanceReconciler(attendance_repo)

        first = await reconciler.reconcile_incomplete(now=at(19))
        second = await reconciler.reconcile_incomplete(now=at(19))

        assert first.updated == 1
        assert second.processed == 0
        assert second.updated == 0

    async def test_completed_rows_untouched(self, employee_factory, attendance_factory, attendance_repo):
        employee = employee_factory()
        done = attendance_factory(
            employee.employee_id, DAY, check_in=at(9), check_out=at(17), hours_worked=Decimal("8")
        )
        attendance_repo.records.append(done)

        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(19))

        assert result.processed == 0
        assert done.check_out == at(17)

    async def test_concurrent_checkout_counted_as_skipped(self, open_record, attendance_repo):
        attendance_repo.conflicts.add(open_record.attendance_id)

        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(19))

        assert result.updated == 0
        assert result.skipped == 1
        assert result.success

    async def test_failure_isolated_per_row(self, employee_factory, attendance_factory, attendance_repo, caplog):
        alice = employee_factory("EMP001")
        bob = employee_factory("EMP002")
        broken = attendance_factory(alice.employee_id, DAY, check_in=at(9))
        healthy = attendance_factory(bob.employee_id, DAY, check_in=at(10))
        attendance_repo.records.extend([broken, healthy])
        attendance_repo.failures[broken.attendance_id] = RuntimeError("connection reset")

        result = await AttendanceReconciler(attendance_repo).reconcile_incomplete(now=at(19))

        assert result.processed == 2
        assert result.updated == 1
        assert result.failed == 1
        assert not result.success
        assert healthy.hours_worked == Decimal("8.00")
        assert broken.check_out is None
        assert "Auto-checkout failed" in caplog.text

    async def test_custom_checkout_hour(self, open_record, attendance_repo):
        reconciler = AttendanceReconciler(attendance_repo, checkout_hour=17, half_day_hours=6)

        await reconciler.reconcile_incomplete(now=at(17, 30))

        assert open_record.check_out == at(17)
        assert open_record.hours_worked == Decimal("8.00")
        assert open_record.status == "present"


class TestSqlReconcile:
    """Test the conditional update against SQLite."""

    async def test_closes_open_rows(self, session, session_factory, employee_factory, attendance_factory):
        employee = employee_factory()
        session.add(employee)
        open_row = attendance_factory(employee.employee_id, DAY, check_in=at(9))
        closed_row = attendance_factory(
            employee.employee_id,
            date(2024, 1, 12),
            check_in=at(9, day=date(2024, 1, 12)),
            check_out=at(17, day=date(2024, 1, 12)),
            hours_worked=Decimal("8"),
        )
        session.add_all([open_row, closed_row])
        await session.commit()

        result = await AttendanceReconciler(SqlAttendanceRepository(session)).reconcile_incomplete(
            now=at(19)
        )

        assert result.processed == 1
        assert result.updated == 1

        async with session_factory() as fresh:
            rows = {
                row.date: row
                for row in (await fresh.execute(select(Attendance))).scalars().all()
            }
        assert rows[DAY].check_out == at(18)
        assert rows[DAY].hours_worked == Decimal("9.00")
        assert rows[DAY].status == "present"
        assert rows[date(2024, 1, 12)].check_out == at(17, day=date(2024, 1, 12))

    async def test_conditional_write_reports_conflict(self, session, employee_factory, attendance_factory):
        employee = employee_factory()
        session.add(employee)
        row = attendance_factory(employee.employee_id, DAY, check_in=at(9), check_out=at(12))
        session.add(row)
        await session.commit()

        repo = SqlAttendanceRepository(session)
        closed = await repo.close_if_open(row.attendance_id, at(18), Decimal("9"), "present")

        assert closed is False

    async def test_failed_write_does_not_abort_batch(
        self, session, session_factory, engine, employee_factory, attendance_factory, caplog
    ):
        alice = employee_factory("EMP001")
        bob = employee_factory("EMP002")
        session.add_all([alice, bob])
        session.add_all(
            [
                attendance_factory(alice.employee_id, DAY, check_in=at(9)),
                attendance_factory(bob.employee_id, DAY, check_in=at(10)),
            ]
        )
        await session.commit()

        failed_statements = []

        @event.listens_for(engine.sync_engine, "before_cursor_execute")
        def fail_first_update(conn, cursor, statement, parameters, context, executemany):
            if statement.startswith("UPDATE attendance") and not failed_statements:
                failed_statements.append(statement)
                raise sqlite3.OperationalError("disk I/O error")

        result = await AttendanceReconciler(SqlAttendanceRepository(session)).reconcile_incomplete(
            now=at(19)
        )

        assert result.processed == 2
        assert result.failed == 1
        assert result.updated == 1
        assert len(failed_statements) == 1
        assert "Auto-checkout failed" in caplog.text

        async with session_factory() as fresh:
            rows = (await fresh.execute(select(Attendance))).scalars().all()
        assert sorted(row.check_out is None for row in rows) == [False, True]

    async def test_checkout_between_read_and_write_is_skipped(
        self, session, session_factory, employee_factory, attendance_factory
    ):
        employee = employee_factory()
        session.add(employee)
        row = attendance_factory(employee.employee_id, DAY, check_in=at(9))
        session.add(row)
        await session.commit()

        class RacingAttendanceRepository(SqlAttendanceRepository):
            """Lets the employee check out from another session right after the read."""

            async def list_incomplete(self, up_to):
                records = await super().list_incomplete(up_to)
                async with session_factory() as other:
                    await other.execute(
                        update(Attendance)
                        .where(Attendance.attendance_id == row.attendance_id)
                        .values(check_out=at(17), hours_worked=Decimal("8.00"), status="present")
                    )
                    await other.commit()
                return records

        result = await AttendanceReconciler(RacingAttendanceRepository(session)).reconcile_incomplete(
            now=at(19)
        )

        assert result.processed == 1
        assert result.updated == 0
        assert result.skipped == 1
        assert result.success

        async with session_factory() as fresh:
            stored = await fresh.get(Attendance, row.attendance_id)
        assert stored.check_out == at(17)
        assert stored.hours_worked == Decimal("8.00")
