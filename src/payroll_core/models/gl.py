"""General Ledger configuration models."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_core.models.base import Base, CompanyScopedMixin, TimestampMixin
from payroll_core.posting import rules as gl_rules
from payroll_core.posting import types as gl

logger = logging.getLogger(__name__)


def _id(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


class GLAccount(Base, CompanyScopedMixin, TimestampMixin):
    """Chart of accounts entry for a company."""

    __tablename__ = "gl_account"

    gl_account_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_domain(self) -> gl.GLAccount:
        return gl.GLAccount(
            id=str(self.gl_account_id),
            code=self.code,
            name=self.name,
            is_active=self.is_active,
        )


class GLAccountMapping(Base, CompanyScopedMixin, TimestampMixin):
    """Maps a payroll concept to its debit and credit accounts."""

    __tablename__ = "gl_account_mapping"

    gl_account_mapping_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    mapping_type: Mapped[str] = mapped_column(String, nullable=False)
    debit_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("gl_account.gl_account_id"), nullable=True
    )
    credit_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("gl_account.gl_account_id"), nullable=True
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_domain(self) -> gl.GLMapping:
        return gl.GLMapping(
            id=str(self.gl_account_mapping_id),
            mapping_type=self.mapping_type,
            debit_account_id=_id(self.debit_account_id),
            credit_account_id=_id(self.credit_account_id),
            priority=self.priority,
            is_active=self.is_active,
        )


class GLOverrideRule(Base, CompanyScopedMixin, TimestampMixin):
    """Conditional redirect of a journal entry's account or GL string."""

    __tablename__ = "gl_override_rule"

    gl_override_rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    override_type: Mapped[str] = mapped_column(String, nullable=False)
    override_account_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("gl_account.gl_account_id"), nullable=True
    )
    override_gl_string: Mapped[str | None] = mapped_column(String, nullable=True)
    segment_overrides_json: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    applies_to_debit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    applies_to_credit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "override_type IN ('account', 'segment', 'full_string')",
            name="override_type",
        ),
    )

    # Relationships
    conditions: Mapped[list[GLOverrideCondition]] = relationship(
        back_populates="rule", lazy="selectin"
    )

    def to_domain(self) -> gl_rules.GLOverrideRule | None:
        """Convert to the posting rule; incomplete rules convert to None."""
        target: gl_rules.OverrideTarget
        if self.override_type == "account" and self.override_account_id is not None:
            target = gl_rules.ReplaceAccount(account_id=str(self.override_account_id))
        elif self.override_type == "full_string" and self.override_gl_string:
            target = gl_rules.ReplaceFullString(gl_string=self.override_gl_string)
        elif self.override_type == "segment":
            target = gl_rules.SegmentOverrides(
                segments={str(k): str(v) for k, v in (self.segment_overrides_json or {}).items()}
            )
        else:
            logger.warning(
                "GL override rule %s (%s) has no usable target; ignored",
                self.gl_override_rule_id,
                self.override_type,
            )
            return None

        return gl_rules.GLOverrideRule(
            id=str(self.gl_override_rule_id),
            name=self.name,
            target=target,
            priority=self.priority,
            conditions=tuple(c.to_domain() for c in self.conditions),
            applies_to_debit=self.applies_to_debit,
            applies_to_credit=self.applies_to_credit,
            is_active=self.is_active,
        )


class GLOverrideCondition(Base, TimestampMixin):
    """One dimension test of an override rule."""

    __tablename__ = "gl_override_condition"

    gl_override_condition_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    gl_override_rule_id: Mapped[UUID] = mapped_column(
        ForeignKey("gl_override_rule.gl_override_rule_id", ondelete="CASCADE"),
        nullable=False,
    )
    dimension_type: Mapped[str] = mapped_column(String, nullable=False)
    operator: Mapped[str] = mapped_column(String, nullable=False, default="equals")
    value: Mapped[str | None] = mapped_column(String, nullable=True)
    values_json: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint(
            "operator IN ('equals', 'not_equals', 'in', 'any')",
            name="operator",
        ),
    )

    # Relationships
    rule: Mapped[GLOverrideRule] = relationship(back_populates="conditions")

    def to_domain(self) -> gl_rules.GLOverrideCondition:
        return gl_rules.GLOverrideCondition(
            dimension_type=self.dimension_type,
            operator=gl_rules.ConditionOperator(self.operator),
            value=self.value,
            values=tuple(str(v) for v in (self.values_json or [])),
        )


class GLSegment(Base, CompanyScopedMixin, TimestampMixin):
    """Dimensional segment of the company's GL string."""

    __tablename__ = "gl_segment"

    gl_segment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    segment_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    default_value: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_domain(self) -> gl.GLSegment:
        return gl.GLSegment(
            code=self.code,
            segment_order=self.segment_order,
            name=self.name,
            is_active=self.is_active,
        )
