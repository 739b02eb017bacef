"""
Canteen Service — Health endpoint
"""
import asyncio
from typing import Awaitable, Callable

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from canteen.core.config import get_settings
from canteen.core.redis_client import get_redis
from canteen.db.database import engine
from canteen.schemas.canteen import HealthResponse

settings = get_settings()
router = APIRouter(tags=["health"])


async def _ping_postgres() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _ping_redis() -> None:
    await get_redis().ping()


async def _probe(check: Callable[[], Awaitable[None]]) -> str:
    try:
        await asyncio.wait_for(check(), timeout=settings.HEALTH_CHECK_TIMEOUT)
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    200 when the document store (and, for the sql backend, its Redis change
    feed) answers; 503 "degraded" otherwise.
    """
    if settings.DOCUMENT_STORE_BACKEND == "memory":
        deps = {"document_store": "ok (memory)"}
    else:
        deps = {
            "postgresql": await _probe(_ping_postgres),
            "redis": await _probe(_ping_redis),
        }
    healthy = all(v.startswith("ok") for v in deps.values())

    response = HealthResponse(
        status="healthy" if healthy else "degraded",
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        dependencies=deps,
    )
    return JSONResponse(content=response.model_dump(), status_code=200 if healthy else 503)
