"""
Health check endpoint.

GET /health — checks MongoDB and Redis connectivity.
Both stores are required (users live in MongoDB, OTP codes in Redis), so a
failure of either one reports "unhealthy" (503).
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", responses={200: {"model": HealthResponse}, 503: {"model": HealthResponse}})
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"

    redis = request.app.state.redis
    if redis is None:
        checks["redis"] = "not_connected"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "error"

    overall = "healthy" if all(v == "ok" for v in checks.values()) else "unhealthy"
    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content=HealthResponse(status=overall, checks=checks).model_dump(),
    )
