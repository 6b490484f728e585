"""Service endpoints that are not part of the relay itself."""

import time

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(prefix="/api")


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    return HealthResponse(
        status="ok",
        version=request.app.version,
        uptime_seconds=time.time() - request.app.state.start_time,
    )
