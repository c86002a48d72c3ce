"""Tests for traversal budgets."""

import dataclasses

import pytest

from contexthunt.explorer import TraversalBudget


class TestTraversalBudget:
    """Limits, validation and config loading."""

    def test_within_budget(self):
        """Nothing is exceeded below every limit."""
        budget = TraversalBudget(max_steps=5, max_depth=2, max_duration=10)
        assert budget.exceeded(step_count=4, depth=2, elapsed=9.9) is None

    def test_each_dimension_is_reported(self):
        """The first exceeded dimension is named."""
        budget = TraversalBudget(max_steps=5, max_depth=2, max_duration=10)
        assert budget.exceeded(5, 0, 0) == "steps"
        assert budget.exceeded(0, 0, 10) == "duration"
        assert budget.exceeded(0, 3, 0) == "depth"

    def test_global_limits_win_over_depth(self):
        """Steps and duration are reported before depth."""
        budget = TraversalBudget(max_steps=1, max_depth=0, max_duration=1)
        assert budget.exceeded(1, 5, 5) == "steps"
        assert budget.exceeded(0, 5, 5) == "duration"

    def test_budget_is_immutable(self):
        """A budget cannot change mid-run."""
        budget = TraversalBudget()
        with pytest.raises(dataclasses.FrozenInstanceError):
            budget.max_steps = 1

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_steps": 0}, {"max_depth": -1}, {"max_duration": 0}, {"max_duration": -5}],
    )
    def test_invalid_limits_are_rejected(self, kwargs):
        """Limits that would forbid even the root are refused."""
        with pytest.raises(ValueError):
            TraversalBudget(**kwargs)

    def test_from_dict(self):
        """Config keys map onto the budget; missing keys keep defaults."""
        budget = TraversalBudget.from_dict({"max_steps": "12", "max_duration_seconds": 30})
        assert budget.max_steps == 12
        assert budget.max_duration == 30.0
        assert budget.max_depth == TraversalBudget().max_depth

    def test_from_empty_dict(self):
        """No config means the defaults."""
        assert TraversalBudget.from_dict(None) == TraversalBudget()
