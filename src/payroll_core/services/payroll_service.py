"""Run-level payroll simulation service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from payroll_core.calculators.engine import CalculationInputs, PayrollEngine, SimulationResult
from payroll_core.calculators.types import CalculationConfig
from payroll_core.posting.types import GLBatch, PostingContext
from payroll_core.services.reference_data import ReferenceData, ReferenceDataLoader

logger = logging.getLogger(__name__)


@dataclass
class RunSimulation:
    """Simulations and GL batches for every employee of a run."""

    simulations: list[SimulationResult] = field(default_factory=list)
    batches: list[GLBatch] = field(default_factory=list)

    @property
    def failed(self) -> list[SimulationResult]:
        return [s for s in self.simulations if not s.success]


class PayrollCalculationService:
    """Simulates a whole payroll run against the company's stored configuration.

    Reference data is loaded once per run. Each employee is then simulated
    as an independent task; a failure for one employee becomes a failed
    result and does not stop the others.
    """

    def __init__(self, loader: ReferenceDataLoader, config: CalculationConfig | None = None):
        self.loader = loader
        self.engine = PayrollEngine(config)

    async def simulate_run(
        self,
        company_id: str,
        employees: Sequence[CalculationInputs],
        jurisdiction: str | None = None,
        tax_year: int | None = None,
        context: PostingContext | None = None,
        post: bool = True,
    ) -> RunSimulation:
        if tax_year is None:
            tax_year = next((e.period.end.year for e in employees if e.period), None)

        reference = await self.loader.load(
            company_id,
            jurisdiction=jurisdiction,
            tax_year=tax_year,
            employee_ids=[e.employee.employee_id for e in employees],
        )

        results = await asyncio.gather(
            *(self._simulate_employee(reference, inputs, context, post) for inputs in employees)
        )

        run = RunSimulation()
        for simulation, batch in results:
            run.simulations.append(simulation)
            if batch is not None:
                run.batches.append(batch)

        logger.info(
            "Simulated run for company %s: %d employees, %d failed",
            company_id,
            len(run.simulations),
            len(run.failed),
        )
        return run

    async def _simulate_employee(
        self,
        reference: ReferenceData,
        inputs: CalculationInputs,
        context: PostingContext | None,
        post: bool,
    ) -> tuple[SimulationResult, GLBatch | None]:
        inputs = replace(
            inputs,
            schemes=inputs.schemes or reference.schemes,
            opening_balance=(
                inputs.opening_balance
                or reference.opening_balance_for(inputs.employee.employee_id)
            ),
        )
        try:
            simulation = self.engine.simulate(inputs)
            batch = (
                self.engine.post(simulation, reference.gl_config, context)
                if post and simulation.success
                else None
            )
        except Exception as exc:
            logger.exception("Simulation failed for employee %s", inputs.employee.employee_id)
            return self.engine.error_result(inputs, f"Calculation failed: {exc}"), None
        return simulation, batch
