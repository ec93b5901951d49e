"""Salary component and structure endpoints."""

from datetime import date
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from workzen.api.dependencies import DbSession, SalaryStructureServiceDep
from workzen.api.schemas import (
    ComponentEditRequest,
    ErrorResponse,
    SalaryPreviewRequest,
    SalaryStructureCreate,
    SalaryStructureResponse,
)
from workzen.calculators import ComponentValidationError, SalaryComponentCalculator, SalaryComponents

router = APIRouter(tags=["salary"])

ComponentsResponse = dict[str, Decimal]


def _components_from_payload(data: dict[str, Decimal]) -> SalaryComponents:
    try:
        components = SalaryComponents.from_dict(data)
    except KeyError as e:
        raise ComponentValidationError(str(e.args[0]), data[e.args[0]], "unknown salary component") from None
    return SalaryComponentCalculator.validate(components)


@router.post(
    "/salary/preview",
    response_model=ComponentsResponse,
    responses={422: {"model": ErrorResponse}},
)
async def preview_components(
    payload: SalaryPreviewRequest,
    service: SalaryStructureServiceDep,
) -> ComponentsResponse:
    """Derive the default component set for a monthly wage."""
    return service.preview(payload.month_wage).to_dict()


@router.post(
    "/salary/recompute",
    response_model=ComponentsResponse,
    responses={422: {"model": ErrorResponse}},
)
async def recompute_components(
    payload: ComponentEditRequest,
    service: SalaryStructureServiceDep,
) -> ComponentsResponse:
    """Apply one amount/percent/wage edit and cascade."""
    current = _components_from_payload(payload.current)
    return service.recompute_from_component(current, payload.component, payload.value).to_dict()


@router.get(
    "/employees/{employee_id}/salary",
    response_model=ComponentsResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_current_components(
    service: SalaryStructureServiceDep,
    employee_id: Annotated[UUID, Path()],
    as_of: Annotated[date | None, Query()] = None,
) -> ComponentsResponse:
    """Components in effect on ``as_of`` (default today)."""
    components = await service.current_components(employee_id, as_of or date.today())
    return components.to_dict()


@router.get(
    "/employees/{employee_id}/salary-structures",
    response_model=list[SalaryStructureResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_structures(
    service: SalaryStructureServiceDep,
    employee_id: Annotated[UUID, Path()],
) -> list[SalaryStructureResponse]:
    """Structure history, newest first."""
    structures = await service.history(employee_id)
    return [SalaryStructureResponse.model_validate(s) for s in structures]


@router.post(
    "/employees/{employee_id}/salary-structures",
    response_model=SalaryStructureResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_structure(
    db: DbSession,
    service: SalaryStructureServiceDep,
    employee_id: Annotated[UUID, Path()],
    payload: SalaryStructureCreate,
) -> SalaryStructureResponse:
    """Save a new structure version, closing the open one."""
    if payload.components is not None:
        components = _components_from_payload(payload.components)
    elif payload.month_wage is not None:
        components = service.preview(payload.month_wage)
    else:
        raise ComponentValidationError("components", None, "provide components or month_wage")

    structure = await service.save_structure(
        employee_id, components, payload.effective_from, payload.name
    )
    await db.commit()
    return SalaryStructureResponse.model_validate(structure)
