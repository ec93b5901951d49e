"""Payroll settings endpoints."""

from fastapi import APIRouter

from workzen.api.dependencies import DbSession, SettingsServiceDep
from workzen.api.schemas import ErrorResponse, PayrollSettingsResponse, PayrollSettingsUpdate

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/payroll", response_model=PayrollSettingsResponse)
async def get_payroll_settings(db: DbSession, service: SettingsServiceDep) -> PayrollSettingsResponse:
    settings = await service.get()
    # The default row may have just been created
    await db.commit()
    return PayrollSettingsResponse.model_validate(settings)


@router.put(
    "/payroll",
    response_model=PayrollSettingsResponse,
    responses={422: {"model": ErrorResponse}},
)
async def update_payroll_settings(
    db: DbSession,
    service: SettingsServiceDep,
    payload: PayrollSettingsUpdate,
) -> PayrollSettingsResponse:
    settings = await service.update(
        tax_rate=payload.tax_rate,
        insurance_rate=payload.insurance_rate,
        pay_period_days=payload.pay_period_days,
    )
    await db.commit()
    return PayrollSettingsResponse.model_validate(settings)
