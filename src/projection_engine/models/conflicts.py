"""Conflict items and the aggregate conflict report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class ConflictItem:
    """A single configuration or calendar conflict."""

    code: str
    is_blocking: bool
    message: str
    related_dates: tuple[date, ...] = field(default_factory=tuple)
    related_goal_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def severity(self) -> str:
        return "blocking" if self.is_blocking else "warning"


@dataclass(frozen=True)
class ConflictReport:
    """All conflicts found for one request.

    ``is_blocking`` is the logical OR of the item flags.
    """

    items: tuple[ConflictItem, ...] = field(default_factory=tuple)

    @property
    def is_blocking(self) -> bool:
        return any(item.is_blocking for item in self.items)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(item.code for item in self.items)
