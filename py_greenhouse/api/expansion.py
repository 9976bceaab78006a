"""
Greenhouse expansion endpoints.

``POST /greenhouse/expansion`` runs the optimizer synchronously and returns
the full plan. The same computation backs background jobs (see ``jobs``).
"""

from fastapi import APIRouter, HTTPException
import structlog

from ..config import settings
from ..core.expansion import ExpansionError, optimize_expansion
from ..core.grid import default_unlocked_cells
from ..core.metrics import MetricCache, PotentialMetric, UnknownMetric, available_metrics, get_metric
from .schemas import DefaultsResponse, ExpansionRequest, ExpansionResponse, ExpansionStepModel

logger = structlog.get_logger()

router = APIRouter(tags=["greenhouse"])


def build_metric(name: str) -> PotentialMetric:
    """Instantiate a metric by name with the options configured for it."""
    options = {}
    if name == "spawn_sites":
        options["min_neighbors"] = settings.spawn_min_neighbors
    return get_metric(name, **options)


def compute_expansion(request: ExpansionRequest) -> ExpansionResponse:
    """
    Run the optimizer for a request and shape the wire response.

    Raises:
        ExpansionError: On empty unlocked or candidate sets
        UnknownMetric: If the request names an unregistered metric
    """
    metric = build_metric(request.metric or settings.default_metric)
    cache = MetricCache(max_entries=settings.metric_cache_size)

    plan = optimize_expansion(
        unlocked=request.unlocked_cells,
        candidates=request.locked_cells,
        metric=metric,
        cache=cache,
    )
    logger.debug("Metric cache usage", hits=cache.hits, misses=cache.misses)

    return ExpansionResponse(
        steps=[
            ExpansionStepModel(
                order=step.order,
                cell=step.cell,
                gloomgourd_potential=step.cumulative_potential,
                gloomgourd_gain=step.gain,
            )
            for step in plan.steps
        ],
        total_steps=plan.total_steps,
        final_gloomgourd_count=plan.final_potential,
    )


@router.get("/defaults", response_model=DefaultsResponse)
async def get_defaults():
    """Grid size, starting layout and available metrics."""
    return DefaultsResponse(
        grid_size=settings.grid_size,
        default_unlocked_cells=sorted(default_unlocked_cells(settings.grid_size)),
        metrics=available_metrics(),
        default_metric=settings.default_metric,
    )


@router.post("/greenhouse/expansion", response_model=ExpansionResponse)
async def expansion(request: ExpansionRequest):
    """
    Compute the unlock order that maximizes potential at every step.

    Candidates that cannot be reached through other candidates are left out
    of the plan.
    """
    logger.info("Expansion requested",
                unlocked=len(request.unlocked_cells),
                locked=len(request.locked_cells),
                metric=request.metric)
    try:
        return compute_expansion(request)
    except ExpansionError as e:
        logger.info("Expansion request rejected", kind=e.kind, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    except UnknownMetric as e:
        raise HTTPException(status_code=400, detail=str(e))
