"""Payrun and payslip endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from workzen.api.dependencies import DbSession, PayrunServiceDep
from workzen.api.schemas import (
    ErrorResponse,
    PayrunCreate,
    PayrunProcessResponse,
    PayrunResponse,
    PayslipListResponse,
    PayslipResponse,
    PayslipUpdate,
)

router = APIRouter(tags=["payruns"])


# ============================================================================
# Payruns
# ============================================================================


@router.post(
    "/payruns",
    response_model=PayrunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_payrun(
    db: DbSession,
    service: PayrunServiceDep,
    payload: PayrunCreate,
) -> PayrunResponse:
    """Create a new payrun in draft status."""
    payrun = await service.create_payrun(
        payload.name,
        payload.pay_period_start,
        payload.pay_period_end,
        payload.pay_date,
    )
    await db.commit()
    return PayrunResponse.model_validate(payrun)


@router.get(
    "/payruns/{payrun_id}",
    response_model=PayrunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payrun(
    service: PayrunServiceDep,
    payrun_id: Annotated[UUID, Path()],
) -> PayrunResponse:
    return PayrunResponse.model_validate(await service.get_payrun(payrun_id))


@router.post(
    "/payruns/{payrun_id}/process",
    response_model=PayrunProcessResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def process_payrun(
    db: DbSession,
    service: PayrunServiceDep,
    payrun_id: Annotated[UUID, Path()],
) -> PayrunProcessResponse:
    """Generate payslips for every active employee."""
    result = await service.process_payrun(payrun_id)
    await db.commit()
    return PayrunProcessResponse(
        payrun_id=result.payrun_id,
        status=result.status,
        payslips_created=result.payslips_created,
        total_amount=result.total_amount,
        errors={str(k): v for k, v in result.errors.items()},
    )


@router.get(
    "/payruns/{payrun_id}/payslips",
    response_model=PayslipListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_payslips(
    service: PayrunServiceDep,
    payrun_id: Annotated[UUID, Path()],
) -> PayslipListResponse:
    payslips = await service.list_payslips(payrun_id)
    items = [PayslipResponse.model_validate(p) for p in payslips]
    return PayslipListResponse(items=items, total=len(items))


@router.post(
    "/payruns/{payrun_id}/validate",
    response_model=PayrunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def validate_payrun(
    db: DbSession,
    service: PayrunServiceDep,
    payrun_id: Annotated[UUID, Path()],
) -> PayrunResponse:
    """Validate every payslip; the payrun completes."""
    payrun = await service.validate_all(payrun_id)
    await db.commit()
    return PayrunResponse.model_validate(payrun)


# ============================================================================
# Payslips
# ============================================================================


@router.get(
    "/payslips/{payslip_id}",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payslip(
    service: PayrunServiceDep,
    payslip_id: Annotated[UUID, Path()],
) -> PayslipResponse:
    return PayslipResponse.model_validate(await service.get_payslip(payslip_id))


@router.patch(
    "/payslips/{payslip_id}",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def update_payslip(
    db: DbSession,
    service: PayrunServiceDep,
    payslip_id: Annotated[UUID, Path()],
    payload: PayslipUpdate,
) -> PayslipResponse:
    """Manually adjust earnings or deductions."""
    payslip = await service.update_payslip(payslip_id, **payload.changes())
    await db.commit()
    return PayslipResponse.model_validate(payslip)


@router.post(
    "/payslips/{payslip_id}/validate",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def validate_payslip(
    db: DbSession,
    service: PayrunServiceDep,
    payslip_id: Annotated[UUID, Path()],
) -> PayslipResponse:
    payslip = await service.validate_payslip(payslip_id)
    await db.commit()
    return PayslipResponse.model_validate(payslip)
