# backend/travel_itinerary/api/routes_itinerary.py

from typing import Optional

from fastapi import APIRouter, Depends, Request

from travel_itinerary.api.deps import current_user, get_context
from travel_itinerary.core.context import AppContext
from travel_itinerary.models.itinerary_models import CreateItineraryIn, UpdateItineraryIn
from travel_itinerary.models.user_models import UserRecord
from travel_itinerary.services.itinerary_service import ITINERARY_ROUTE, itinerary_path

router = APIRouter(prefix=ITINERARY_ROUTE, tags=["itineraries"])


# --------------------------
# Shared itinerary (public)
# --------------------------
@router.get("/share/{shareable_id}")
def get_shared_itinerary(shareable_id: str, ctx: AppContext = Depends(get_context)):
    return {"itinerary": ctx.itinerary_service.shared(shareable_id)}


# --------------------------
# Create
# --------------------------
@router.post("", status_code=201)
def create_itinerary(
    data: CreateItineraryIn,
    ctx: AppContext = Depends(get_context),
    user: UserRecord = Depends(current_user),
):
    record = ctx.itinerary_service.create(user, data.model_dump())
    return {
        "message": "Itinerary created successfully",
        "itinerary": record.to_public(),
    }


# --------------------------
# List (filter / paginate / sort)
# --------------------------
@router.get("")
def list_itineraries(
    destination: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    sort: str = "createdAt",
    ctx: AppContext = Depends(get_context),
    user: UserRecord = Depends(current_user),
):
    result = ctx.itinerary_service.list(
        user, destination=destination, page=page, limit=limit, sort=sort
    )
    return {
        "itineraries": [it.to_public() for it in result.items],
        "pagination": result.pagination(),
    }


# --------------------------
# Get by id (cached)
# --------------------------
@router.get("/{itinerary_id}")
def get_itinerary(
    itinerary_id: str,
    nocache: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
    user: UserRecord = Depends(current_user),
):
    def _load():
        record = ctx.itinerary_service.get(user, itinerary_id)
        return {"itinerary": record.to_public()}

    return ctx.response_cache.fetch(
        itinerary_path(itinerary_id),
        user.id,
        _load,
        bypass=nocache == "true",
    )


# --------------------------
# Update (partial)
# --------------------------
@router.put("/{itinerary_id}")
def update_itinerary(
    itinerary_id: str,
    data: UpdateItineraryIn,
    ctx: AppContext = Depends(get_context),
    user: UserRecord = Depends(current_user),
):
    record = ctx.itinerary_service.update(user, itinerary_id, data.model_dump(exclude_unset=True))
    return {
        "message": "Itinerary updated successfully",
        "itinerary": record.to_public(),
    }


# --------------------------
# Delete
# --------------------------
@router.delete("/{itinerary_id}")
def delete_itinerary(
    itinerary_id: str,
    ctx: AppContext = Depends(get_context),
    user: UserRecord = Depends(current_user),
):
    ctx.itinerary_service.delete(user, itinerary_id)
    return {"message": "Itinerary deleted successfully"}


# --------------------------
# Share
# --------------------------
@router.post("/{itinerary_id}/share")
def share_itinerary(
    itinerary_id: str,
    request: Request,
    ctx: AppContext = Depends(get_context),
    user: UserRecord = Depends(current_user),
):
    shareable_id = ctx.itinerary_service.share(user, itinerary_id)
    base = str(request.base_url).rstrip("/")
    return {
        "message": "Shareable link generated",
        "shareableUrl": f"{base}{ITINERARY_ROUTE}/share/{shareable_id}",
        "shareableId": shareable_id,
    }
