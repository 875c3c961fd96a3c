"""
GET /health

Reports database reachability and whether the site has been bootstrapped yet.
A failed ping or an unreadable site collection makes the service "unhealthy"
(503); an uninitialized site is still healthy.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from errors import StoreUnavailableError
from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


async def _mongo_reachable(request: Request) -> bool:
    try:
        await request.app.state.db.client.admin.command("ping")
    except Exception as e:
        log.warning("health_mongo_ping_failed", error=str(e), error_type=type(e).__name__)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}

    if await _mongo_reachable(request):
        checks["mongodb"] = "ok"
        try:
            site = await request.app.state.site_store.find_singleton()
        except StoreUnavailableError:
            checks["site"] = "error"
        else:
            checks["site"] = "initialized" if site is not None else "uninitialized"
    else:
        checks["mongodb"] = "error"

    healthy = "error" not in checks.values()
    body = HealthResponse(status="healthy" if healthy else "unhealthy", checks=checks)
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())
