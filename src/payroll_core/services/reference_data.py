"""Reference data loading for calculation runs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, TypeVar

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_core.calculators.types import OpeningBalance, StatutoryScheme
from payroll_core.models import (
    EmployeeOpeningBalance,
    GLAccount,
    GLAccountMapping,
    GLOverrideRule,
    GLSegment,
    StatutoryDeductionType,
)
from payroll_core.posting.types import GLConfiguration

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReferenceData:
    """Read-only snapshot shared by every employee of a run."""

    schemes: tuple[StatutoryScheme, ...] = ()
    gl_config: GLConfiguration = field(default_factory=GLConfiguration)
    opening_balances: Mapping[str, OpeningBalance] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def opening_balance_for(self, employee_id: str) -> OpeningBalance | None:
        return self.opening_balances.get(employee_id)


class ReferenceDataLoader:
    """Reads statutory and GL configuration concurrently.

    Each read runs in its own session so the queries can proceed in
    parallel; the results are frozen into a ReferenceData snapshot.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load(
        self,
        company_id: str,
        jurisdiction: str | None = None,
        tax_year: int | None = None,
        employee_ids: Sequence[str] | None = None,
    ) -> ReferenceData:
        schemes, accounts, mappings, rules, segments, balances = await asyncio.gather(
            self._fetch(self._schemes_query(jurisdiction), lambda m: m.to_domain()),
            self._fetch(
                select(GLAccount).where(GLAccount.company_id == company_id),
                lambda m: m.to_domain(),
            ),
            self._fetch(
                select(GLAccountMapping).where(GLAccountMapping.company_id == company_id),
                lambda m: m.to_domain(),
            ),
            self._fetch(
                select(GLOverrideRule)
                .where(GLOverrideRule.company_id == company_id)
                .order_by(GLOverrideRule.priority.desc()),
                lambda m: m.to_domain(),
            ),
            self._fetch(
                select(GLSegment)
                .where(GLSegment.company_id == company_id)
                .order_by(GLSegment.segment_order),
                lambda m: (m.to_domain(), m.default_value),
            ),
            self._fetch(
                self._balances_query(tax_year, employee_ids),
                lambda m: (m.employee_id, m.to_domain()),
            ),
        )

        gl_config = GLConfiguration.build(
            accounts=accounts,
            mappings=mappings,
            override_rules=(r for r in rules if r is not None),
            segments=(segment for segment, _ in segments),
            segment_defaults={
                segment.code: default for segment, default in segments if default
            },
        )
        logger.debug(
            "Loaded reference data for company %s: %d schemes, %d accounts, "
            "%d mappings, %d override rules, %d segments, %d opening balances",
            company_id,
            len(schemes),
            len(accounts),
            len(mappings),
            len(gl_config.override_rules),
            len(segments),
            len(balances),
        )
        return ReferenceData(
            schemes=tuple(schemes),
            gl_config=gl_config,
            opening_balances=MappingProxyType(dict(balances)),
        )

    async def _fetch(self, stmt: Select[Any], convert: Callable[[Any], T]) -> list[T]:
        async with self.session_factory() as session:
            rows = (await session.scalars(stmt)).all()
            return [convert(row) for row in rows]

    @staticmethod
    def _schemes_query(jurisdiction: str | None) -> Select[Any]:
        stmt = select(StatutoryDeductionType).where(StatutoryDeductionType.is_active.is_(True))
        if jurisdiction:
            stmt = stmt.where(
                or_(
                    StatutoryDeductionType.jurisdiction == jurisdiction,
                    StatutoryDeductionType.jurisdiction.is_(None),
                )
            )
        return stmt.order_by(StatutoryDeductionType.code)

    @staticmethod
    def _balances_query(tax_year: int | None, employee_ids: Iterable[str] | None) -> Select[Any]:
        # Ascending years so the latest year wins when no year is given
        stmt = select(EmployeeOpeningBalance).order_by(EmployeeOpeningBalance.tax_year)
        if tax_year is not None:
            stmt = stmt.where(EmployeeOpeningBalance.tax_year == tax_year)
        if employee_ids is not None:
            stmt = stmt.where(EmployeeOpeningBalance.employee_id.in_(list(employee_ids)))
        return stmt
