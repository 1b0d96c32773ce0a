"""Date-selection state machine tests."""

from __future__ import annotations

from datetime import date

import pytest

from backend.schedules.selection import DateSelection, MixedSelectionError, SelectionState


class TestSelection:

    def test_starts_empty(self):
        sel = DateSelection()
        assert sel.state is SelectionState.NO_SELECTION
        assert sel.pending_operation is None
        assert sel.size == 0

    def test_scheduled_click_means_modify(self):
        sel = DateSelection()
        assert sel.toggle(date(2024, 6, 3), True) is SelectionState.SELECTING_WITH_SCHEDULE
        assert sel.pending_operation == "modify"

    def test_free_clicks_accumulate(self):
        sel = DateSelection()
        sel.toggle(date(2024, 6, 5), False)
        sel.toggle(date(2024, 6, 4), False)
        assert sel.state is SelectionState.SELECTING_WITHOUT_SCHEDULE
        assert sel.pending_operation == "create"
        assert sel.dates == [date(2024, 6, 4), date(2024, 6, 5)]

    def test_mixed_click_rejected_and_state_kept(self):
        sel = DateSelection()
        sel.toggle(date(2024, 6, 3), True)
        with pytest.raises(MixedSelectionError):
            sel.toggle(date(2024, 6, 4), False)
        assert sel.size == 1
        assert date(2024, 6, 3) in sel
        assert sel.state is SelectionState.SELECTING_WITH_SCHEDULE

    def test_unclicking_last_day_resets(self):
        sel = DateSelection()
        sel.toggle(date(2024, 6, 3), False)
        assert sel.toggle(date(2024, 6, 3), False) is SelectionState.NO_SELECTION
        assert len(sel) == 0

    def test_after_reset_other_kind_allowed(self):
        sel = DateSelection()
        sel.toggle(date(2024, 6, 3), True)
        sel.clear()
        assert sel.toggle(date(2024, 6, 4), False) is SelectionState.SELECTING_WITHOUT_SCHEDULE

    def test_padding_slot_rejected(self):
        with pytest.raises(ValueError):
            DateSelection().toggle(None, False)
