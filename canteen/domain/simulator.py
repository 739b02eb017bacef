"""
Canteen Core — Rush-hour queue simulator

Per simulated minute:
    capacity = stations / avg_prep_minutes                 (orders per minute)
    incoming = max(0, round(rate + (U(0,1) - 0.5) * rate * 0.3))
    queue    = max(0, queue + incoming - capacity)

Pass a seeded ``random.Random`` to reproduce a run exactly.
"""
import random

from pydantic import BaseModel, Field

from canteen.domain.analytics import round_half_up


class SimulationParams(BaseModel):
    duration_minutes: int = Field(45, ge=1, le=24 * 60)
    new_orders_per_min: float = Field(5, ge=0)
    stations: int = Field(2, ge=0)
    avg_prep_minutes: float = Field(6, gt=0)


class SimulationResult(BaseModel):
    max_queue: int
    avg_queue: float
    est_max_wait_minutes: float
    timeline: list[float]


def simulate_queue(params: SimulationParams, rng: random.Random | None = None) -> SimulationResult:
    rng = rng or random.Random()
    rate = params.new_orders_per_min
    capacity = params.stations / params.avg_prep_minutes

    queue = 0.0
    total = 0.0
    peak = 0.0
    timeline: list[float] = []

    for _ in range(params.duration_minutes):
        noise = (rng.random() - 0.5) * rate * 0.3
        incoming = max(0, round_half_up(rate + noise))
        queue = max(0.0, queue + incoming - capacity)
        total += queue
        peak = max(peak, queue)
        timeline.append(queue)

    avg = total / params.duration_minutes
    wait = 0 if capacity == 0 else round_half_up(peak / capacity, 1)
    return SimulationResult(
        max_queue=int(round_half_up(peak)),
        avg_queue=round_half_up(avg, 1),
        est_max_wait_minutes=wait,
        timeline=timeline,
    )
