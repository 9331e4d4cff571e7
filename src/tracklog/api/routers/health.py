# Hey future me - Docker HEALTHCHECK / K8s livenessProbe target:
#   curl -f http://localhost:3000/health/live || exit 1
# Mounted OUTSIDE the rate-limited gateway routers so a busy probe never eats a client's budget,
# and it never touches Spotify or the session cookie.
"""Health check endpoints for Docker/Kubernetes probes."""

from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tracklog import __version__

router = APIRouter()


class LivenessStatus(BaseModel):
    """Simple liveness probe response."""

    status: str = Field(description="alive or dead")
    timestamp: str = Field(description="ISO timestamp")
    version: str = Field(default=__version__, description="Application version")


@router.get("/live", response_model=LivenessStatus)
async def liveness_probe() -> LivenessStatus:
    """Liveness probe for Kubernetes/Docker.

    Returns 200 if the application process is running. No dependency checks.
    """
    return LivenessStatus(
        status="alive",
        timestamp=datetime.now(UTC).isoformat(),
    )
