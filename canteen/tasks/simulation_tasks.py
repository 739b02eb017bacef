"""
Canteen Service — Celery tasks (rush-hour what-if runs)

Simulations are pure CPU work with no store access, so a failed run is
simply reported; there is nothing to roll back.
"""
import logging
import random

from pydantic import ValidationError

from canteen.core.celery_app import celery_app
from canteen.domain.simulator import SimulationParams, simulate_queue

logger = logging.getLogger(__name__)


@celery_app.task(
    name="run_queue_simulation",
    bind=True,
    acks_late=True,
)
def run_queue_simulation(self, params: dict, seed: int | None = None) -> dict:
    """Run one simulation and return the result as plain JSON."""
    try:
        parsed = SimulationParams.model_validate(params)
    except ValidationError:
        logger.warning("Simulation %s rejected: invalid parameters %s", self.request.id, params)
        raise

    rng = random.Random(seed) if seed is not None else None
    result = simulate_queue(parsed, rng)
    logger.info(
        "Simulation %s: %d min at %.1f/min on %d stations → peak %d",
        self.request.id, parsed.duration_minutes, parsed.new_orders_per_min, parsed.stations, result.max_queue,
    )
    return result.model_dump()
