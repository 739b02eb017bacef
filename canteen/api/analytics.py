"""
Canteen Service — Rush-hour simulation API

Short runs are computed inline; ``run_async`` hands the job to the Celery
worker and returns a task id to poll.
"""
import logging
import random
import uuid

from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, status
from kombu.exceptions import OperationalError

from canteen.api.dependencies import require_role
from canteen.core.celery_app import celery_app
from canteen.core.config import get_settings
from canteen.domain.documents import Role
from canteen.domain.simulator import SimulationParams, simulate_queue
from canteen.schemas.canteen import SimulationJob, SimulationRequest
from canteen.tasks.simulation_tasks import run_queue_simulation

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/analytics", tags=["analytics"])

staff_only = require_role(Role.VENDOR, Role.ADMIN)


def _params(payload: SimulationRequest) -> SimulationParams:
    """Request values, falling back to the configured defaults."""
    return SimulationParams(
        duration_minutes=payload.duration_minutes or settings.SIM_DURATION_MINUTES,
        new_orders_per_min=(
            payload.new_orders_per_min if payload.new_orders_per_min is not None else settings.SIM_NEW_ORDERS_PER_MIN
        ),
        stations=payload.stations if payload.stations is not None else settings.SIM_STATIONS,
        avg_prep_minutes=payload.avg_prep_minutes or settings.SIM_AVG_PREP_MINUTES,
    )


@router.post("/simulations", response_model=SimulationJob)
async def run_simulation(payload: SimulationRequest, _=Depends(staff_only)):
    params = _params(payload)

    if not payload.run_async:
        rng = random.Random(payload.seed) if payload.seed is not None else None
        result = simulate_queue(params, rng)
        return SimulationJob(task_id=str(uuid.uuid4()), status="SUCCESS", result=result.model_dump())

    try:
        task = run_queue_simulation.delay(params.model_dump(), payload.seed)
    except OperationalError:
        logger.exception("Failed to queue simulation")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to queue simulation. Check server logs.",
        )
    logger.info("Simulation %s queued", task.id)
    return SimulationJob(task_id=task.id, status="PENDING")


@router.get("/simulations/{task_id}", response_model=SimulationJob)
async def simulation_status(task_id: str, _=Depends(staff_only)):
    outcome = AsyncResult(task_id, app=celery_app)
    if outcome.failed():
        return SimulationJob(task_id=task_id, status=outcome.status, result={"error": str(outcome.result)})
    return SimulationJob(
        task_id=task_id,
        status=outcome.status,
        result=outcome.result if outcome.successful() else None,
    )
