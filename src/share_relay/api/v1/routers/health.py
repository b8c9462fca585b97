from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from share_relay.api.deps import RelayDep

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(relay: RelayDep) -> JSONResponse:
    errors: list[str] = []

    if relay.redis is None:
        errors.append("redis: not connected")
    else:
        try:
            await relay.redis.ping()
        except Exception as exc:  # noqa: BLE001
            errors.append(f"redis: {exc}")

    if not relay.ready:
        errors.append("relay: not ready")

    if errors:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "errors": errors},
        )
    return JSONResponse(content={"status": "ready", "connections": len(relay.registry)})
