"""Calendar date-selection state machine.

A selection holds dates of a single kind: either all already scheduled
(the user is about to modify them) or all unscheduled (the user is about
to create schedules). Clicking a day of the other kind is rejected and
leaves the selection untouched.

    NO_SELECTION ──click(scheduled)──▶ SELECTING_WITH_SCHEDULE
    NO_SELECTION ──click(free)───────▶ SELECTING_WITHOUT_SCHEDULE
    SELECTING_* ──click(same kind)───▶ add / remove (empty → NO_SELECTION)
    SELECTING_* ──click(other kind)──▶ MixedSelectionError
    any ──clear()────────────────────▶ NO_SELECTION
"""

from __future__ import annotations

import enum
from datetime import date
from typing import Optional


class SelectionState(str, enum.Enum):
    NO_SELECTION = "no_selection"
    SELECTING_WITH_SCHEDULE = "selecting_with_schedule"
    SELECTING_WITHOUT_SCHEDULE = "selecting_without_schedule"


class MixedSelectionError(ValueError):
    """Raised when a click would mix scheduled and unscheduled dates."""

    def __init__(self, day: date, has_schedule: bool) -> None:
        self.day = day
        self.has_schedule = has_schedule
        kind = "a scheduled" if has_schedule else "an unscheduled"
        super().__init__(
            f"Cannot add {kind} day ({day.isoformat()}) to the current selection. "
            "Clear the selection first."
        )


_PENDING_OPERATION = {
    SelectionState.NO_SELECTION: None,
    SelectionState.SELECTING_WITH_SCHEDULE: "modify",
    SelectionState.SELECTING_WITHOUT_SCHEDULE: "create",
}


class DateSelection:
    """Mutable selection of calendar dates with a single-kind invariant."""

    def __init__(self) -> None:
        self._dates: set[date] = set()
        self._state = SelectionState.NO_SELECTION

    # ── Read side ───────────────────────────────────────────────────

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def dates(self) -> list[date]:
        return sorted(self._dates)

    @property
    def size(self) -> int:
        return len(self._dates)

    @property
    def pending_operation(self) -> Optional[str]:
        """``"create"``, ``"modify"`` or ``None`` when nothing is selected."""
        return _PENDING_OPERATION[self._state]

    def __contains__(self, day: object) -> bool:
        return day in self._dates

    def __len__(self) -> int:
        return len(self._dates)

    # ── Transitions ─────────────────────────────────────────────────

    def toggle(self, day: Optional[date], has_schedule: bool) -> SelectionState:
        """Apply one click and return the resulting state.

        Raises:
            ValueError: if *day* is a padding slot (``None``).
            MixedSelectionError: if *day* is of the other kind.
        """
        if day is None:
            raise ValueError("Padding slots cannot be selected.")

        wanted = (
            SelectionState.SELECTING_WITH_SCHEDULE
            if has_schedule
            else SelectionState.SELECTING_WITHOUT_SCHEDULE
        )

        if self._state is SelectionState.NO_SELECTION:
            self._dates = {day}
            self._state = wanted
            return self._state

        if self._state is not wanted:
            raise MixedSelectionError(day, has_schedule)

        if day in self._dates:
            self._dates.discard(day)
            if not self._dates:
                self._state = SelectionState.NO_SELECTION
        else:
            self._dates.add(day)
        return self._state

    def clear(self) -> None:
        self._dates.clear()
        self._state = SelectionState.NO_SELECTION

    def __repr__(self) -> str:
        return f"<DateSelection {self._state.value} size={self.size}>"
