"""Tests for the greedy expansion optimizer."""

import pytest

from py_greenhouse.core.expansion import (
    EmptyCandidateSet, EmptyUnlockedSet, ExpansionError, ExpansionPlan,
    optimize_expansion
)
from py_greenhouse.core.grid import default_unlocked_cells, is_adjacent, locked_cells
from py_greenhouse.core.metrics import MetricCache, SpawnSiteMetric


class TestPreconditions:
    """Test precondition failures."""

    def test_empty_candidates(self):
        with pytest.raises(EmptyCandidateSet) as exc_info:
            optimize_expansion({(0, 0)}, set())
        assert exc_info.value.kind == "empty_candidate_set"
        assert str(exc_info.value) == "No locked cells to expand to"

    def test_empty_unlocked(self):
        with pytest.raises(EmptyUnlockedSet) as exc_info:
            optimize_expansion(set(), {(0, 1)})
        assert exc_info.value.kind == "empty_unlocked_set"
        assert exc_info.value.message == "Please select at least one cell first"

    def test_unlocked_checked_first(self):
        with pytest.raises(EmptyUnlockedSet):
            optimize_expansion([], [])

    def test_errors_are_value_errors(self):
        assert issubclass(EmptyCandidateSet, ExpansionError)
        assert issubclass(ExpansionError, ValueError)


class TestGreedyOrdering:
    """Test the step sequence produced by the optimizer."""

    def test_cell_count_example(self):
        plan = optimize_expansion({(0, 0)}, {(0, 1), (1, 0), (5, 5)})

        assert plan.cells == [(0, 1), (1, 0)]
        assert [s.order for s in plan.steps] == [1, 2]
        assert [s.gain for s in plan.steps] == [1, 1]
        assert [s.cumulative_potential for s in plan.steps] == [2, 3]
        assert plan.total_steps == 2
        assert plan.final_potential == 3
        assert plan.unreachable == ((5, 5),)

    def test_chain_through_candidates(self):
        plan = optimize_expansion({(0, 0)}, {(0, 3), (0, 2), (0, 1)})
        assert plan.cells == [(0, 1), (0, 2), (0, 3)]

    def test_no_reachable_candidate(self):
        plan = optimize_expansion({(0, 0)}, {(0, 2)})
        assert plan.steps == ()
        assert plan.final_potential == 1
        assert plan.unreachable == ((0, 2),)

    def test_metric_decides_over_row_major(self):
        ring = {(r, c) for r in range(3) for c in range(3)} - {(1, 1)}
        candidates = {(1, 1), (0, 3)}

        by_count = optimize_expansion(ring, candidates)
        assert by_count.cells == [(0, 3), (1, 1)]

        by_spawn = optimize_expansion(ring, candidates, metric=SpawnSiteMetric())
        assert by_spawn.cells == [(1, 1), (0, 3)]
        assert [s.gain for s in by_spawn.steps] == [1, 0]
        assert by_spawn.final_potential == 1

    def test_plain_function_metric(self):
        plan = optimize_expansion({(0, 0)}, {(0, 1)}, metric=lambda cells: 2 * len(cells))
        assert plan.steps[0].gain == 2
        assert plan.final_potential == 4

    def test_already_unlocked_candidates_ignored(self):
        plan = optimize_expansion({(0, 0)}, {(0, 0), (0, 1)})
        assert plan.cells == [(0, 1)]

    def test_inputs_not_mutated(self):
        unlocked = {(0, 0)}
        candidates = {(0, 1), (1, 0)}
        optimize_expansion(unlocked, candidates)
        assert unlocked == {(0, 0)}
        assert candidates == {(0, 1), (1, 0)}

    def test_uses_cache(self):
        cache = MetricCache()
        optimize_expansion({(0, 0)}, {(0, 1), (1, 0), (1, 1)},
                           metric=lambda cells: len(cells), cache=cache)
        assert cache.hits > 0


class TestPlanProperties:
    """Properties that hold over a full greenhouse expansion."""

    @pytest.fixture(params=["cell_count", "spawn_sites"])
    def plan_and_inputs(self, request):
        unlocked = default_unlocked_cells()
        candidates = set(locked_cells(unlocked))
        plan = optimize_expansion(unlocked, candidates, metric=request.param)
        return plan, unlocked, candidates, request.param

    def test_deterministic(self, plan_and_inputs):
        plan, unlocked, candidates, metric = plan_and_inputs
        assert optimize_expansion(unlocked, candidates, metric=metric) == plan

    def test_every_reachable_candidate_once(self, plan_and_inputs):
        plan, _, candidates, _ = plan_and_inputs
        assert len(plan.cells) == len(set(plan.cells))
        assert set(plan.cells) == candidates
        assert plan.unreachable == ()

    def test_each_step_adjacent_to_unlocked_area(self, plan_and_inputs):
        plan, unlocked, _, _ = plan_and_inputs
        current = set(unlocked)
        for step in plan.steps:
            assert any(is_adjacent(step.cell, cell) for cell in current), step
            current.add(step.cell)

    def test_cumulative_potential_monotonic(self, plan_and_inputs):
        plan, _, _, _ = plan_and_inputs
        values = [s.cumulative_potential for s in plan.steps]
        assert values == sorted(values)
        assert plan.final_potential == values[-1]

    def test_orders_strictly_increase_from_one(self, plan_and_inputs):
        plan, _, _, _ = plan_and_inputs
        assert [s.order for s in plan.steps] == list(range(1, plan.total_steps + 1))


class TestFollowingPlan:
    """Test advancing a plan as the player unlocks cells."""

    def setup_method(self):
        self.plan = optimize_expansion({(0, 0)}, {(0, 1), (1, 0), (1, 1)})

    def test_advance_with_first_step(self):
        first = self.plan.steps[0].cell
        advanced = self.plan.advance(first)
        assert advanced.total_steps == self.plan.total_steps - 1
        assert [s.order for s in advanced.steps] == [1, 2]
        assert advanced.cells == self.plan.cells[1:]

    def test_advance_with_other_cell_discards_plan(self):
        advanced = self.plan.advance(self.plan.steps[1].cell)
        assert advanced == ExpansionPlan()
        assert advanced.total_steps == 0

    def test_step_for(self):
        step = self.plan.step_for((1, 0))
        assert step is not None and step.cell == (1, 0)
        assert self.plan.step_for((9, 9)) is None
