"""Dimensional GL string composition."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from payroll_core.posting.types import GLSegment

SEPARATOR = "-"


class GLStringComposer:
    """Builds GL strings from the company's active segments.

    Segment values come from the overlay when present, else from the
    caller's defaults. Empty values are dropped and the account code is
    always the last element, so ``1000`` + ``4500`` + ``SALARY`` becomes
    ``1000-4500-SALARY``. Without segments the GL string is the account
    code.
    """

    def __init__(
        self,
        segments: Iterable[GLSegment] = (),
        defaults: Mapping[str, str] | None = None,
    ):
        self.segments = sorted(
            (s for s in segments if s.is_active), key=lambda s: s.segment_order
        )
        self.defaults = dict(defaults or {})

    def compose(self, account_code: str, overlay: Mapping[str, str] | None = None) -> str:
        overlay = overlay or {}
        values = []
        for segment in self.segments:
            value = overlay.get(segment.code) or self.defaults.get(segment.code) or ""
            if value:
                values.append(value)
        values.append(account_code)
        return SEPARATOR.join(values)
