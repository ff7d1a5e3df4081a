# backend/travel_itinerary/models/itinerary_models.py

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from travel_itinerary.utils.time_utils import to_iso


class Activity(BaseModel):
    time: str
    description: str
    location: str


# -------------------------
# Request bodies
# -------------------------
class CreateItineraryIn(BaseModel):
    title: Optional[str] = None
    destination: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    activities: Optional[List[Activity]] = None


class UpdateItineraryIn(BaseModel):
    """Partial update; only fields present in the body are applied."""
    title: Optional[str] = None
    destination: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    activities: Optional[List[Activity]] = None


# -------------------------
# Stored itinerary
# -------------------------
class ItineraryRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    user_id: str = Field(alias="userId")
    title: str
    destination: str
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    activities: List[Activity] = []
    shareable_id: Optional[str] = Field(default=None, alias="shareableId")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ItineraryRecord":
        return cls.model_validate({
            **doc,
            "_id": str(doc["_id"]),
            "userId": str(doc["userId"]),
        })

    def to_public(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "destination": self.destination,
            "startDate": to_iso(self.start_date),
            "endDate": to_iso(self.end_date),
            "activities": [a.model_dump() for a in self.activities],
            "shareableId": self.shareable_id,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }

    def to_shared(self) -> Dict[str, Any]:
        """Public view for share links: no owner, no share token."""
        public = self.to_public()
        public.pop("userId")
        public.pop("shareableId")
        return public


class ItineraryPage(BaseModel):
    items: List[ItineraryRecord]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
        }
