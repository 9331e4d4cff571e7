"""API router initialization."""

# Hey future me, this is the router aggregator! gateway_router holds every route a browser hits
# (login flow + data) and carries enforce_rate_limit as a ROUTER-LEVEL dependency, so FastAPI runs
# it before any route dependency - a rejected client never gets its cookie decrypted or a Spotify
# call made on its behalf. health_router is mounted separately (no limit) in main.py.

from fastapi import APIRouter, Depends

from tracklog.api.dependencies import enforce_rate_limit
from tracklog.api.routers import auth, health, player

gateway_router = APIRouter(dependencies=[Depends(enforce_rate_limit)])

gateway_router.include_router(auth.router, tags=["Authentication"])
gateway_router.include_router(player.router, tags=["Player"])

health_router = APIRouter()
health_router.include_router(health.router, prefix="/health", tags=["Health"])

__all__ = ["gateway_router", "health_router"]
