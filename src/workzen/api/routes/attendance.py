"""Attendance endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from workzen.api.dependencies import AttendanceReconcilerDep, AttendanceServiceDep, DbSession
from workzen.api.schemas import (
    AttendanceEvent,
    AttendanceResponse,
    ErrorResponse,
    ReconcileRequest,
    ReconcileResponse,
)

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post(
    "/check-in",
    response_model=AttendanceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def check_in(
    db: DbSession,
    service: AttendanceServiceDep,
    payload: AttendanceEvent,
) -> AttendanceResponse:
    record = await service.check_in(payload.employee_id, payload.timestamp)
    await db.commit()
    return AttendanceResponse.model_validate(record)


@router.post(
    "/check-out",
    response_model=AttendanceResponse,
    responses={409: {"model": ErrorResponse}},
)
async def check_out(
    service: AttendanceServiceDep,
    payload: AttendanceEvent,
) -> AttendanceResponse:
    # The conditional checkout write commits on its own
    record = await service.check_out(payload.employee_id, payload.timestamp)
    return AttendanceResponse.model_validate(record)


@router.get(
    "/{employee_id}",
    response_model=list[AttendanceResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_attendance(
    service: AttendanceServiceDep,
    employee_id: Annotated[UUID, Path()],
    start: Annotated[date, Query()],
    end: Annotated[date, Query()],
) -> list[AttendanceResponse]:
    records = await service.list_attendance(employee_id, start, end)
    return [AttendanceResponse.model_validate(r) for r in records]


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    reconciler: AttendanceReconcilerDep,
    payload: ReconcileRequest | None = None,
) -> ReconcileResponse:
    """Run the auto-checkout job once."""
    now = payload.now if payload is not None else None
    result = await reconciler.reconcile_incomplete(now)
    return ReconcileResponse(**result.to_dict())
