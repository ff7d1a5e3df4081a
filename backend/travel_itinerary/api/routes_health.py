# backend/travel_itinerary/api/routes_health.py

from fastapi import APIRouter, Depends

from travel_itinerary.api.deps import get_context
from travel_itinerary.core.context import AppContext
from travel_itinerary.db import mongo
from travel_itinerary.utils.time_utils import to_iso, utcnow

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health(ctx: AppContext = Depends(get_context)):
    return {
        "status": "ok",
        "timestamp": to_iso(utcnow()),
        "database": "connected" if mongo.ping(ctx.db) else "disconnected",
        "redis": ctx.cache.status(),
    }
