"""
Expansion order optimizer.

Given the cells a player has already unlocked and the locked cells they are
considering, work out the order in which to unlock them so that the
potential metric grows as fast as possible at every step.

The search is greedy: each round looks at the candidates that touch the
current unlocked area, takes the one with the largest marginal gain and
repeats. Ties go to the lowest (row, col). This makes every prefix of the
result a sensible "best next cell" recommendation, which is how players use
it (one unlock at a time).

Greedy is not globally optimal. Maximizing the total area under the
cumulative-potential curve over all prefixes is a search over orderings and
grows exponentially with the number of candidates. The greedy trade-off is
deliberate; replacing it with an exhaustive search needs a discussion of
request latency first.
"""

from dataclasses import dataclass, field, replace
from typing import Collection, Iterable, List, Optional, Tuple, Union

import structlog

from .grid import Coord, is_adjacent_to_unlocked, row_major
from .metrics import MetricCache, PotentialMetric, as_metric

logger = structlog.get_logger()


class ExpansionError(ValueError):
    """Precondition failure of an expansion request."""

    kind = "expansion_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    default_message = "Expansion request is invalid"

    @property
    def message(self) -> str:
        return str(self)


class EmptyUnlockedSet(ExpansionError):
    """There is no unlocked cell to expand from."""

    kind = "empty_unlocked_set"
    default_message = "Please select at least one cell first"


class EmptyCandidateSet(ExpansionError):
    """There is no locked cell to expand to."""

    kind = "empty_candidate_set"
    default_message = "No locked cells to expand to"


def check_expansion_inputs(unlocked: Collection[Coord], candidates: Collection[Coord]) -> None:
    """
    Raise the precondition error an expansion request would hit, if any.

    Raises:
        EmptyUnlockedSet: If ``unlocked`` is empty
        EmptyCandidateSet: If ``candidates`` is empty
    """
    if not unlocked:
        raise EmptyUnlockedSet()
    if not candidates:
        raise EmptyCandidateSet()


@dataclass(frozen=True)
class ExpansionStep:
    """One recommended unlock."""
    cell: Coord
    order: int
    gain: float
    cumulative_potential: float


@dataclass(frozen=True)
class ExpansionPlan:
    """Ordered unlock recommendations produced by one optimizer run."""
    steps: Tuple[ExpansionStep, ...] = ()
    final_potential: float = 0
    unreachable: Tuple[Coord, ...] = field(default=(), compare=False)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def cells(self) -> List[Coord]:
        return [step.cell for step in self.steps]

    def step_for(self, cell: Coord) -> Optional[ExpansionStep]:
        """Find the step that unlocks ``cell``, if any."""
        for step in self.steps:
            if step.cell == tuple(cell):
                return step
        return None

    def advance(self, cell: Coord) -> "ExpansionPlan":
        """
        Follow the plan after the player unlocked ``cell``.

        Unlocking the first recommended cell drops that step and renumbers
        the rest from 1. Any other unlock changes the adjacency picture the
        plan was built on, so the plan is discarded.
        """
        if not self.steps or self.steps[0].cell != tuple(cell):
            return ExpansionPlan()
        remaining = tuple(
            replace(step, order=i + 1) for i, step in enumerate(self.steps[1:])
        )
        return ExpansionPlan(
            steps=remaining,
            final_potential=self.final_potential,
            unreachable=self.unreachable,
        )


MetricLike = Union[PotentialMetric, str, None]


def _eligible(remaining: set, current: set) -> List[Coord]:
    """Remaining candidates with an unlocked edge neighbour, row-major."""
    return row_major(cell for cell in remaining if is_adjacent_to_unlocked(cell, current))


def optimize_expansion(
    unlocked: Iterable[Coord],
    candidates: Iterable[Coord],
    metric: MetricLike = None,
    cache: Optional[MetricCache] = None,
) -> ExpansionPlan:
    """
    Order candidate unlocks by greedy marginal gain.

    Args:
        unlocked: Cells that are already unlocked
        candidates: Locked cells the player could unlock
        metric: Potential metric, registered metric name or plain function;
            defaults to the cell-count metric
        cache: Optional memo for full metric evaluations

    Returns:
        ExpansionPlan with one step per reachable candidate

    Raises:
        EmptyUnlockedSet: If ``unlocked`` is empty
        EmptyCandidateSet: If ``candidates`` is empty
    """
    current = {tuple(cell) for cell in unlocked}
    remaining = {tuple(cell) for cell in candidates}
    check_expansion_inputs(current, remaining)

    overlap = remaining & current
    if overlap:
        logger.debug("Ignoring candidates that are already unlocked", count=len(overlap))
        remaining -= overlap

    metric = as_metric(metric)
    logger.info("Starting expansion optimization",
                metric=metric.name,
                unlocked=len(current),
                candidates=len(remaining))

    cumulative = metric.evaluate(frozenset(current), cache)
    steps: List[ExpansionStep] = []
    order = 1

    while remaining:
        eligible = _eligible(remaining, current)
        if not eligible:
            break

        snapshot = frozenset(current)
        best_cell = eligible[0]
        best_gain = metric.gain(snapshot, best_cell, cache)
        # eligible is row-major, so a strict comparison keeps the lowest cell on ties
        for cell in eligible[1:]:
            gain = metric.gain(snapshot, cell, cache)
            if gain > best_gain:
                best_cell, best_gain = cell, gain

        remaining.discard(best_cell)
        current.add(best_cell)
        cumulative += best_gain
        steps.append(ExpansionStep(
            cell=best_cell,
            order=order,
            gain=best_gain,
            cumulative_potential=cumulative,
        ))
        order += 1

    unreachable = tuple(row_major(remaining))
    if unreachable:
        logger.info("Dropped unreachable candidates", count=len(unreachable))

    logger.info("Expansion optimization complete",
                total_steps=len(steps),
                final_potential=cumulative)

    return ExpansionPlan(
        steps=tuple(steps),
        final_potential=cumulative,
        unreachable=unreachable,
    )
