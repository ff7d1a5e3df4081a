# backend/travel_itinerary/services/itinerary_service.py

"""
Itinerary operations shared by the REST routes and the GraphQL resolvers.

Every operation takes the already-authenticated user and runs in the same
order: ownership check → repository → cache maintenance → notification.
"""

from typing import Any, Dict, Optional

from travel_itinerary.core.cache import CacheAside, itinerary_key, response_key
from travel_itinerary.core.guard import AuthorizationGuard
from travel_itinerary.core.logger import get_logger
from travel_itinerary.db.itinerary_repository import ItineraryRepository, object_id
from travel_itinerary.models.itinerary_models import ItineraryPage, ItineraryRecord
from travel_itinerary.models.user_models import UserRecord
from travel_itinerary.services.notifier import NotificationDispatcher

logger = get_logger("itineraries")

ITINERARY_ROUTE = "/api/itineraries"


def canonical_id(itinerary_id: str) -> str:
    """Lower-case hex form of a valid ObjectId; cache keys are built from it."""
    return str(object_id(itinerary_id))


def itinerary_path(itinerary_id: str) -> str:
    return f"{ITINERARY_ROUTE}/{canonical_id(itinerary_id)}"


class ItineraryService:
    def __init__(
        self,
        repository: ItineraryRepository,
        guard: AuthorizationGuard,
        cache: CacheAside,
        dispatcher: NotificationDispatcher,
        cache_ttl: int = 300,
    ):
        self.repository = repository
        self.guard = guard
        self.cache = cache
        self.dispatcher = dispatcher
        self.cache_ttl = cache_ttl

    # ----------------------------------------------------------------------
    # CREATE
    # ----------------------------------------------------------------------
    def create(self, user: UserRecord, fields: Dict[str, Any]) -> ItineraryRecord:
        record = self.repository.create(user.id, fields)
        logger.info("Itinerary %s created by %s", record.id, user.id)

        try:
            self.dispatcher.itinerary_created(user.email, user.name, record)
        except Exception as exc:
            logger.error("Error queueing email notification: %s", exc)
        return record

    # ----------------------------------------------------------------------
    # LIST
    # ----------------------------------------------------------------------
    def list(
        self,
        user: UserRecord,
        destination: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
        sort: Optional[str] = "createdAt",
    ) -> ItineraryPage:
        return self.repository.list(user.id, destination=destination, page=page, limit=limit, sort=sort)

    # ----------------------------------------------------------------------
    # GET (read-through cache)
    # ----------------------------------------------------------------------
    def get(self, user: UserRecord, itinerary_id: str) -> ItineraryRecord:
        key = itinerary_key(canonical_id(itinerary_id))

        cached = self.cache.get(key)
        if cached is not None:
            try:
                record = ItineraryRecord.model_validate(cached)
            except ValueError:
                logger.warning("Ignoring malformed cache entry %s", key)
                record = None
            if record is not None:
                self.guard.authorize_owner(record, user.id)
                return record

        record = self.repository.get_by_id(itinerary_id)
        self.guard.authorize_owner(record, user.id)
        self.cache.set(key, record.to_public(), ttl_seconds=self.cache_ttl)
        return record

    # ----------------------------------------------------------------------
    # UPDATE
    # ----------------------------------------------------------------------
    def update(self, user: UserRecord, itinerary_id: str, partial: Dict[str, Any]) -> ItineraryRecord:
        self._owned(user, itinerary_id)
        record = self.repository.update(itinerary_id, partial)
        self.invalidate(itinerary_id)
        return record

    # ----------------------------------------------------------------------
    # DELETE
    # ----------------------------------------------------------------------
    def delete(self, user: UserRecord, itinerary_id: str) -> None:
        self._owned(user, itinerary_id)
        self.repository.delete(itinerary_id)
        self.invalidate(itinerary_id)
        logger.info("Itinerary %s deleted by %s", itinerary_id, user.id)

    # ----------------------------------------------------------------------
    # SHARING
    # ----------------------------------------------------------------------
    def share(self, user: UserRecord, itinerary_id: str) -> str:
        record = self._owned(user, itinerary_id)
        if record.shareable_id:
            return record.shareable_id
        shareable_id = self.repository.generate_share_token(itinerary_id)
        self.invalidate(itinerary_id)
        return shareable_id

    def shared(self, shareable_id: str) -> Dict[str, Any]:
        return self.repository.find_by_share_token(shareable_id)

    # ----------------------------------------------------------------------
    # HELPERS
    # ----------------------------------------------------------------------
    def _owned(self, user: UserRecord, itinerary_id: str) -> ItineraryRecord:
        record = self.repository.get_by_id(itinerary_id)
        self.guard.authorize_owner(record, user.id)
        return record

    def invalidate(self, itinerary_id: str) -> None:
        self.cache.invalidate(
            itinerary_key(canonical_id(itinerary_id)),
            response_key(itinerary_path(itinerary_id)),
        )
