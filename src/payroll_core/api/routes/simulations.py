"""Payroll simulation endpoints."""

from fastapi import APIRouter, status

from payroll_core.api.dependencies import Engine, PayrollService
from payroll_core.api.schemas import (
    ErrorResponse,
    GLBatchResponse,
    RunSimulationRequest,
    RunSimulationResponse,
    SimulationGLRequest,
    SimulationGLResponse,
    SimulationRequest,
    SimulationResponse,
)

router = APIRouter(tags=["simulations"])


@router.post(
    "/simulations",
    response_model=SimulationResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}},
)
async def simulate(engine: Engine, payload: SimulationRequest) -> SimulationResponse:
    """Simulate one employee's pay. Failed calculations return success false."""
    result = engine.simulate(payload.to_inputs())
    return SimulationResponse.model_validate(result)


@router.post(
    "/simulations/gl",
    response_model=SimulationGLResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}},
)
async def simulate_and_post(engine: Engine, payload: SimulationGLRequest) -> SimulationGLResponse:
    """Simulate one employee's pay and build its GL batch."""
    result = engine.simulate(payload.simulation.to_inputs())
    batch = engine.post(
        result,
        payload.gl_config.to_domain(),
        payload.context.to_domain() if payload.context else None,
    )
    return SimulationGLResponse(
        simulation=SimulationResponse.model_validate(result),
        batch=GLBatchResponse.model_validate(batch),
    )


@router.post(
    "/companies/{company_id}/runs/simulate",
    response_model=RunSimulationResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}},
)
async def simulate_run(
    company_id: str,
    service: PayrollService,
    payload: RunSimulationRequest,
) -> RunSimulationResponse:
    """Simulate a run against the company's stored statutory and GL configuration."""
    run = await service.simulate_run(
        company_id,
        [e.to_inputs(payload.payroll_run_id) for e in payload.employees],
        jurisdiction=payload.jurisdiction,
        tax_year=payload.tax_year,
        context=payload.context.to_domain() if payload.context else None,
        post=payload.post,
    )
    return RunSimulationResponse(
        simulations=[SimulationResponse.model_validate(s) for s in run.simulations],
        batches=[GLBatchResponse.model_validate(b) for b in run.batches],
        failed=len(run.failed),
    )
