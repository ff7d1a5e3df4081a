# backend/travel_itinerary/db/itinerary_repository.py

"""
Itinerary persistence.

Ownership is NOT checked here; callers compare ``record.user_id`` with the
authenticated identity before acting on a record.
"""

import re
from typing import Any, Dict, List, Optional
from uuid import uuid4

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection

from travel_itinerary.core.errors import NotFound, ValidationError
from travel_itinerary.models.itinerary_models import ItineraryPage, ItineraryRecord
from travel_itinerary.utils.time_utils import parse_date, utcnow

EDITABLE_FIELDS = ("title", "destination", "startDate", "endDate", "activities")
ACTIVITY_FIELDS = ("time", "description", "location")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT = "createdAt"


def object_id(value: str, message: str = "Invalid itinerary ID format") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(str(value)):
        raise ValidationError(message, field="id")
    return ObjectId(str(value))


def parse_sort(sort: Optional[str]) -> tuple:
    """``"-startDate"`` → ``("startDate", DESCENDING)``."""
    spec = (sort or DEFAULT_SORT).strip()
    direction = ASCENDING
    if spec.startswith("-"):
        direction = DESCENDING
        spec = spec[1:]
    if not spec or spec.startswith("$"):
        raise ValidationError("Invalid sort field", field="sort")
    return spec, direction


# ---------------------------------------------------------------------------
# Field validation (first violated field wins)
# ---------------------------------------------------------------------------
def _required_text(fields: Dict[str, Any], key: str, label: str) -> str:
    value = fields.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required", field=key)
    return value.strip()


def _required_date(fields: Dict[str, Any], key: str, label: str):
    value = fields.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required", field=key)
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"{label} must be a valid date", field=key)
    return parsed


def _activities(value: Any) -> List[Dict[str, str]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("Activities must be a list", field="activities")

    cleaned = []
    for i, activity in enumerate(value):
        if hasattr(activity, "model_dump"):
            activity = activity.model_dump()
        if not isinstance(activity, dict):
            raise ValidationError("Activity must be an object", field=f"activities.{i}")
        item = {}
        for key in ACTIVITY_FIELDS:
            text = activity.get(key)
            if not isinstance(text, str) or not text.strip():
                raise ValidationError(
                    f"Activity {key} is required", field=f"activities.{i}.{key}"
                )
            item[key] = text
        cleaned.append(item)
    return cleaned


def _check_date_order(start, end) -> None:
    if end < start:
        raise ValidationError("End date must be after start date", field="endDate")


class ItineraryRepository:
    def __init__(self, collection: Collection):
        self.itineraries = collection

    # ----------------------------------------------------------------------
    # CREATE
    # ----------------------------------------------------------------------
    def create(self, owner_id: str, fields: Dict[str, Any]) -> ItineraryRecord:
        title = _required_text(fields, "title", "Title")
        destination = _required_text(fields, "destination", "Destination")
        start = _required_date(fields, "startDate", "Start date")
        end = _required_date(fields, "endDate", "End date")
        activities = _activities(fields.get("activities"))
        _check_date_order(start, end)

        now = utcnow()
        doc = {
            "userId": object_id(owner_id, "Invalid user ID format"),
            "title": title,
            "destination": destination,
            "startDate": start,
            "endDate": end,
            "activities": activities,
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.itineraries.insert_one(doc)
        doc["_id"] = result.inserted_id
        return ItineraryRecord.from_document(doc)

    # ----------------------------------------------------------------------
    # LIST
    # ----------------------------------------------------------------------
    def list(
        self,
        owner_id: str,
        destination: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        sort: Optional[str] = DEFAULT_SORT,
    ) -> ItineraryPage:
        if page is None or page < 1:
            raise ValidationError("Page must be a positive integer", field="page")
        if limit is None or limit < 1:
            raise ValidationError("Limit must be a positive integer", field="limit")
        sort_field, direction = parse_sort(sort)

        query: Dict[str, Any] = {"userId": object_id(owner_id, "Invalid user ID format")}
        if destination:
            query["destination"] = {"$regex": re.escape(destination), "$options": "i"}

        order = [(sort_field, direction)]
        if sort_field != "_id":
            order.append(("_id", direction))

        cursor = (
            self.itineraries.find(query)
            .sort(order)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        items = [ItineraryRecord.from_document(doc) for doc in cursor]
        total = self.itineraries.count_documents(query)
        return ItineraryPage(items=items, page=page, limit=limit, total=total)

    # ----------------------------------------------------------------------
    # GET
    # ----------------------------------------------------------------------
    def get_by_id(self, itinerary_id: str) -> ItineraryRecord:
        doc = self.itineraries.find_one({"_id": object_id(itinerary_id)})
        if not doc:
            raise NotFound("Itinerary not found")
        return ItineraryRecord.from_document(doc)

    # ----------------------------------------------------------------------
    # UPDATE (partial)
    # ----------------------------------------------------------------------
    def update(self, itinerary_id: str, partial: Dict[str, Any]) -> ItineraryRecord:
        oid = object_id(itinerary_id)
        current = self.itineraries.find_one({"_id": oid})
        if not current:
            raise NotFound("Itinerary not found")

        changes: Dict[str, Any] = {}
        present = {k: v for k, v in partial.items() if k in EDITABLE_FIELDS}
        if "title" in present:
            changes["title"] = _required_text(present, "title", "Title")
        if "destination" in present:
            changes["destination"] = _required_text(present, "destination", "Destination")
        if "startDate" in present:
            changes["startDate"] = _required_date(present, "startDate", "Start date")
        if "endDate" in present:
            changes["endDate"] = _required_date(present, "endDate", "End date")
        if "activities" in present:
            changes["activities"] = _activities(present["activities"])

        _check_date_order(
            changes.get("startDate", current["startDate"]),
            changes.get("endDate", current["endDate"]),
        )

        changes["updatedAt"] = utcnow()
        # last write wins; no version check
        self.itineraries.update_one({"_id": oid}, {"$set": changes})
        return ItineraryRecord.from_document({**current, **changes})

    # ----------------------------------------------------------------------
    # DELETE
    # ----------------------------------------------------------------------
    def delete(self, itinerary_id: str) -> None:
        result = self.itineraries.delete_one({"_id": object_id(itinerary_id)})
        if result.deleted_count == 0:
            raise NotFound("Itinerary not found")

    # ----------------------------------------------------------------------
    # SHARING
    # ----------------------------------------------------------------------
    def generate_share_token(self, itinerary_id: str) -> str:
        """Return the itinerary's share token, creating it on first call."""
        oid = object_id(itinerary_id)
        doc = self.itineraries.find_one_and_update(
            {"_id": oid, "shareableId": {"$exists": False}},
            {"$set": {"shareableId": str(uuid4()), "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            # already shared (or missing): the stored token is permanent
            doc = self.itineraries.find_one({"_id": oid}, {"shareableId": 1})
            if not doc:
                raise NotFound("Itinerary not found")
        return doc["shareableId"]

    def find_by_share_token(self, token: str) -> Dict[str, Any]:
        """Redacted view of a shared itinerary (see ``ItineraryRecord.to_shared``)."""
        doc = self.itineraries.find_one({"shareableId": token}) if token else None
        if not doc:
            raise NotFound("Shared itinerary not found")
        return ItineraryRecord.from_document(doc).to_shared()
