"""GL posting preview endpoints."""

from fastapi import APIRouter, Response, status

from payroll_core.api.dependencies import Engine
from payroll_core.api.schemas import ErrorResponse, GLBatchResponse, GLPreviewRequest
from payroll_core.posting.engine import GLPostingEngine
from payroll_core.posting.export import export_batch_csv
from payroll_core.posting.types import GLBatch

router = APIRouter(prefix="/gl", tags=["gl"])


def _post(engine: Engine, payload: GLPreviewRequest) -> GLBatch:
    posting = GLPostingEngine(
        payload.gl_config.to_domain(),
        balance_tolerance=engine.config.balance_tolerance,
    )
    return posting.post(
        payload.totals.to_domain(),
        payload.context.to_domain() if payload.context else None,
        company_id=payload.company_id,
        payroll_run_id=payload.payroll_run_id,
        employee_id=payload.employee_id,
    )


@router.post(
    "/preview",
    response_model=GLBatchResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}},
)
async def preview_gl(engine: Engine, payload: GLPreviewRequest) -> GLBatchResponse:
    """Build journal entries for precomputed payroll totals."""
    return GLBatchResponse.model_validate(_post(engine, payload))


@router.post("/preview/csv", status_code=status.HTTP_200_OK)
async def preview_gl_csv(engine: Engine, payload: GLPreviewRequest) -> Response:
    """Same as preview, exported as CSV."""
    return Response(
        content=export_batch_csv(_post(engine, payload)),
        media_type="text/csv",
    )
