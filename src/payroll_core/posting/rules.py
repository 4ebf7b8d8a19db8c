"""GL override rules: conditions, targets and priority selection."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Union

from payroll_core.calculators.matching import by_priority_desc, find_first
from payroll_core.posting.segments import GLStringComposer
from payroll_core.posting.types import EntryDirection, GLAccount, PostingContext


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    ANY = "any"


@dataclass(frozen=True)
class GLOverrideCondition:
    """One dimension test; a rule's conditions are ANDed."""

    dimension_type: str
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: str | None = None
    values: tuple[str, ...] = ()

    def matches(self, context: PostingContext) -> bool:
        if self.operator == ConditionOperator.ANY:
            return True
        actual = context.dimension(self.dimension_type)
        if self.operator == ConditionOperator.EQUALS:
            return actual is not None and actual == self.value
        if self.operator == ConditionOperator.NOT_EQUALS:
            return actual != self.value
        if self.operator == ConditionOperator.IN:
            return actual is not None and actual in self.values
        return False


@dataclass(frozen=True)
class Resolution:
    """Account code and GL string an entry will post with."""

    account_code: str
    gl_string: str
    warning: str | None = None


@dataclass(frozen=True)
class ReplaceAccount:
    """Post to a different account; the GL string is recomposed around it."""

    account_id: str

    def apply(
        self,
        account: GLAccount,
        accounts: Mapping[str, GLAccount],
        composer: GLStringComposer,
    ) -> Resolution:
        target = accounts.get(self.account_id)
        if target is None or not target.is_active:
            state = "not found" if target is None else "inactive"
            return Resolution(
                account_code=account.code,
                gl_string=composer.compose(account.code),
                warning=f"Override target account {self.account_id} {state}; kept {account.code}",
            )
        return Resolution(account_code=target.code, gl_string=composer.compose(target.code))


@dataclass(frozen=True)
class ReplaceFullString:
    """Use a GL string verbatim."""

    gl_string: str

    def apply(
        self,
        account: GLAccount,
        accounts: Mapping[str, GLAccount],
        composer: GLStringComposer,
    ) -> Resolution:
        return Resolution(account_code=account.code, gl_string=self.gl_string)


@dataclass(frozen=True)
class SegmentOverrides:
    """Overlay segment values before composing the GL string."""

    segments: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def apply(
        self,
        account: GLAccount,
        accounts: Mapping[str, GLAccount],
        composer: GLStringComposer,
    ) -> Resolution:
        return Resolution(
            account_code=account.code,
            gl_string=composer.compose(account.code, overlay=self.segments),
        )


OverrideTarget = Union[ReplaceAccount, ReplaceFullString, SegmentOverrides]


@dataclass(frozen=True)
class GLOverrideRule:
    """Conditional, prioritized redirect of an entry's account or GL string."""

    id: str
    target: OverrideTarget
    priority: int = 0
    conditions: tuple[GLOverrideCondition, ...] = ()
    applies_to_debit: bool = True
    applies_to_credit: bool = True
    is_active: bool = True
    name: str = ""

    def applies_to(self, direction: EntryDirection) -> bool:
        if direction == EntryDirection.DEBIT:
            return self.applies_to_debit
        return self.applies_to_credit

    def matches(self, context: PostingContext) -> bool:
        return all(condition.matches(context) for condition in self.conditions)


def select_override_rule(
    rules: Iterable[GLOverrideRule],
    direction: EntryDirection,
    context: PostingContext,
) -> GLOverrideRule | None:
    """Highest-priority active rule for the direction whose conditions all match."""
    candidates = [r for r in rules if r.is_active and r.applies_to(direction)]
    return find_first(by_priority_desc(candidates, lambda r: r.priority), lambda r: r.matches(context))
