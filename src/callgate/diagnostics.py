"""
Diagnostic records produced by the forbidden-function rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from callgate.syntax.parser import Range


@dataclass(frozen=True)
class Diagnostic:
    """
    A single violation.

    ``range`` is the span of the matched reference token. ``override_range``
    is set only when the host should highlight something other than that
    token.
    """
    message: str
    details: tuple[str, ...]
    range: Range
    override_range: Optional[Range] = None

    @property
    def display_range(self) -> Range:
        return self.override_range or self.range

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "message": self.message,
            "details": list(self.details),
            "range": self.range.to_dict(),
        }
        if self.override_range is not None:
            data["override_range"] = self.override_range.to_dict()
        return data
