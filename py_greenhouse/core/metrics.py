"""
Potential metrics for scoring unlocked-cell configurations.

A potential metric maps a set of unlocked cells to a number. The expansion
planner only ever asks two questions of it: "what is the score of this set"
and "how much does adding this cell gain". Metrics must be monotonic
non-decreasing as cells are added, otherwise a step's gain can go negative
and the cumulative potential stops being a running maximum.

The exact in-game rule that decides where a mutation such as the
gloomgourd may spawn is not published. The reference metric is therefore
the linear cell-count proxy; ``SpawnSiteMetric`` is an adjacency-aware
alternative whose neighbour threshold is an assumption and is configurable.
"""

from typing import Callable, Dict, FrozenSet, Hashable, Iterable, List, Optional, Tuple

import numpy as np
import structlog

from .grid import DIRECTIONS_4, DIRECTIONS_8, Coord, cells_to_mask

logger = structlog.get_logger()


class UnknownMetric(KeyError):
    """Raised when a metric name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown potential metric '{self.name}'. Available: {', '.join(available_metrics())}"


class MetricCache:
    """
    Memo of full metric evaluations keyed by (metric key, cell set).

    The cache is an explicit object handed to the planner by the caller, so
    every request or test decides its own lifetime. Once ``max_entries`` is
    reached the oldest entries are evicted first.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries
        self._values: Dict[Tuple[Hashable, FrozenSet[Coord]], float] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._values)

    def evaluate(self, metric: "PotentialMetric", cells: FrozenSet[Coord]) -> float:
        key = (metric.cache_key, cells)
        if key in self._values:
            self.hits += 1
            return self._values[key]

        self.misses += 1
        value = metric(cells)
        if self.max_entries is not None and self.max_entries <= 0:
            return value
        if self.max_entries is not None and len(self._values) >= self.max_entries:
            del self._values[next(iter(self._values))]
        self._values[key] = value
        return value

    def clear(self) -> None:
        self._values.clear()
        self.hits = 0
        self.misses = 0


class PotentialMetric:
    """Base class for potential metrics."""

    name = "base"

    @property
    def cache_key(self) -> Hashable:
        return self.name

    def __call__(self, cells: FrozenSet[Coord]) -> float:
        raise NotImplementedError

    def evaluate(self, cells: FrozenSet[Coord], cache: Optional[MetricCache] = None) -> float:
        if cache is not None:
            return cache.evaluate(self, cells)
        return self(cells)

    def gain(
        self,
        cells: FrozenSet[Coord],
        cell: Coord,
        cache: Optional[MetricCache] = None,
    ) -> float:
        """
        Marginal score of adding ``cell`` to ``cells``.

        The default recomputes the metric twice; subclasses override it with
        a local update when only the neighbourhood of ``cell`` can change.
        """
        if cell in cells:
            return 0
        return self.evaluate(cells | {cell}, cache) - self.evaluate(cells, cache)


class FunctionMetric(PotentialMetric):
    """Adapter turning a plain ``f(cells) -> number`` into a metric."""

    def __init__(self, func: Callable[[FrozenSet[Coord]], float], name: Optional[str] = None):
        self.func = func
        self.name = name or getattr(func, "__name__", "function")

    @property
    def cache_key(self) -> Hashable:
        return (self.name, id(self.func))

    def __call__(self, cells: FrozenSet[Coord]) -> float:
        return self.func(cells)


class CellCountMetric(PotentialMetric):
    """Linear proxy: every unlocked cell is worth one point."""

    name = "cell_count"

    def __call__(self, cells: FrozenSet[Coord]) -> int:
        return len(cells)

    def gain(self, cells, cell, cache=None) -> int:
        return 0 if cell in cells else 1


class SpawnSiteMetric(PotentialMetric):
    """
    Count unlocked cells that could host a 1x1 mutation.

    A cell qualifies when at least ``min_neighbors`` of its neighbours are
    unlocked as well, i.e. there is room around it for the crops a mutation
    requires. Mutation requirements are laid out with 8-way adjacency, so
    that is the default neighbourhood. Adding a cell can only raise
    neighbour counts, which keeps the metric monotonic.
    """

    name = "spawn_sites"

    def __init__(self, min_neighbors: int = 8, diagonal: bool = True):
        directions = DIRECTIONS_8 if diagonal else DIRECTIONS_4
        if not 0 <= min_neighbors <= len(directions):
            raise ValueError(
                f"min_neighbors must be between 0 and {len(directions)}, got {min_neighbors}"
            )
        self.min_neighbors = min_neighbors
        self.diagonal = diagonal
        self.directions = directions

    @property
    def cache_key(self) -> Hashable:
        return (self.name, self.min_neighbors, self.diagonal)

    def neighbor_counts(self, cells: Iterable[Coord]) -> Tuple[np.ndarray, np.ndarray, Coord]:
        """
        Count unlocked neighbours for every cell in the bounding box.

        Returns:
            (mask, counts, origin) where mask marks unlocked cells, counts
            holds the neighbour totals and origin is the (row, col) of the
            top-left corner of both arrays
        """
        cells = list(cells)
        rows = [r for r, _ in cells]
        cols = [c for _, c in cells]
        origin = (min(rows), min(cols))
        height = max(rows) - origin[0] + 1
        width = max(cols) - origin[1] + 1

        padded = cells_to_mask(
            cells, origin=(origin[0] - 1, origin[1] - 1), shape=(height + 2, width + 2)
        ).astype(np.int16)

        counts = np.zeros((height, width), dtype=np.int16)
        for dr, dc in self.directions:
            counts += padded[1 + dr:1 + dr + height, 1 + dc:1 + dc + width]

        mask = padded[1:-1, 1:-1].astype(bool)
        return mask, counts, origin

    def __call__(self, cells: FrozenSet[Coord]) -> int:
        if not cells:
            return 0
        mask, counts, _ = self.neighbor_counts(cells)
        return int(np.count_nonzero(mask & (counts >= self.min_neighbors)))

    def _qualifies(self, cell: Coord, cells: FrozenSet[Coord], extra: Optional[Coord] = None) -> bool:
        if cell not in cells and cell != extra:
            return False
        row, col = cell
        count = 0
        for dr, dc in self.directions:
            n = (row + dr, col + dc)
            if n in cells or n == extra:
                count += 1
        return count >= self.min_neighbors

    def gain(self, cells, cell, cache=None) -> int:
        if cell in cells:
            return 0
        row, col = cell
        affected: List[Coord] = [cell] + [(row + dr, col + dc) for dr, dc in self.directions]
        before = sum(1 for a in affected if self._qualifies(a, cells))
        after = sum(1 for a in affected if self._qualifies(a, cells, extra=cell))
        return after - before


_REGISTRY: Dict[str, Callable[..., PotentialMetric]] = {
    CellCountMetric.name: CellCountMetric,
    SpawnSiteMetric.name: SpawnSiteMetric,
}


def available_metrics() -> List[str]:
    return sorted(_REGISTRY)


def get_metric(name: str, **options) -> PotentialMetric:
    """
    Build a registered metric by name.

    Args:
        name: Registered metric name
        **options: Constructor options for the metric

    Returns:
        A new metric instance

    Raises:
        UnknownMetric: If ``name`` is not registered
    """
    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise UnknownMetric(name) from None
    return factory(**options)


def as_metric(metric) -> PotentialMetric:
    """Accept a metric instance, a registered name or a plain function."""
    if metric is None:
        return CellCountMetric()
    if isinstance(metric, PotentialMetric):
        return metric
    if isinstance(metric, str):
        return get_metric(metric)
    if callable(metric):
        return FunctionMetric(metric)
    raise TypeError(f"Cannot use {type(metric).__name__} as a potential metric")
