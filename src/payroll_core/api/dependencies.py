"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_core.calculators.engine import PayrollEngine
from payroll_core.config import get_settings
from payroll_core.database import get_session_factory
from payroll_core.services.payroll_service import PayrollCalculationService
from payroll_core.services.reference_data import ReferenceDataLoader


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


def get_engine() -> PayrollEngine:
    """Calculation engine configured from settings."""
    return PayrollEngine(get_settings().calculation_config())


def get_payroll_service() -> PayrollCalculationService:
    """Run-level service reading reference data from the database."""
    return PayrollCalculationService(
        ReferenceDataLoader(get_session_factory()),
        get_settings().calculation_config(),
    )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Engine = Annotated[PayrollEngine, Depends(get_engine)]
PayrollService = Annotated[PayrollCalculationService, Depends(get_payroll_service)]
