# backend/travel_itinerary/core/context.py

"""
Explicitly constructed application context.

Holds the store and cache handles plus everything built on them. Routes and
resolvers receive it from ``app.state``; tests build one over doubles.
"""

from dataclasses import dataclass
from typing import Optional

from pymongo.database import Database

from travel_itinerary.core.cache import CacheAside, CacheBackend, ResponseCache, build_cache_backend
from travel_itinerary.core.config_loader import Settings, settings as default_settings
from travel_itinerary.core.guard import AuthorizationGuard, RetryPolicy
from travel_itinerary.core.logger import get_logger
from travel_itinerary.core.security import TokenService
from travel_itinerary.db import mongo
from travel_itinerary.db.credential_store import CredentialStore
from travel_itinerary.db.itinerary_repository import ItineraryRepository
from travel_itinerary.services.auth_service import AuthService
from travel_itinerary.services.itinerary_service import ItineraryService
from travel_itinerary.services.notifier import EmailNotifier, NotificationDispatcher

logger = get_logger("context")


@dataclass
class AppContext:
    settings: Settings
    db: Database
    cache_backend: CacheBackend
    cache: CacheAside
    response_cache: ResponseCache
    credentials: CredentialStore
    itineraries: ItineraryRepository
    tokens: TokenService
    guard: AuthorizationGuard
    dispatcher: NotificationDispatcher
    auth: AuthService
    itinerary_service: ItineraryService

    @classmethod
    def build(
        cls,
        settings: Settings,
        db: Database,
        cache_backend: CacheBackend,
        notifier: Optional[EmailNotifier] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> "AppContext":
        ttl = settings.ITINERARY_CACHE_TTL_SECONDS
        cache = CacheAside(cache_backend, default_ttl=ttl)
        credentials = CredentialStore(db[mongo.USERS])
        itineraries = ItineraryRepository(db[mongo.ITINERARIES])
        tokens = TokenService(
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expires_minutes=settings.access_token_expire_minutes,
        )
        guard = AuthorizationGuard(
            tokens,
            credentials,
            retry or RetryPolicy(
                attempts=settings.USER_LOOKUP_ATTEMPTS,
                delay_seconds=settings.USER_LOOKUP_DELAY_SECONDS,
            ),
        )
        dispatcher = NotificationDispatcher(notifier or EmailNotifier(settings))

        return cls(
            settings=settings,
            db=db,
            cache_backend=cache_backend,
            cache=cache,
            response_cache=ResponseCache(cache, ttl_seconds=ttl),
            credentials=credentials,
            itineraries=itineraries,
            tokens=tokens,
            guard=guard,
            dispatcher=dispatcher,
            auth=AuthService(credentials, tokens, guard),
            itinerary_service=ItineraryService(itineraries, guard, cache, dispatcher, cache_ttl=ttl),
        )

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "AppContext":
        """Connect to MongoDB and Redis (falling back to memory) as configured."""
        db = mongo.connect(settings.MONGODB_URI, settings.MONGODB_DB, settings.MONGODB_TIMEOUT_MS)
        return cls.build(settings, db, build_cache_backend(settings.REDIS_URL))

    def close(self) -> None:
        self.dispatcher.shutdown(wait=True)
        try:
            self.db.client.close()
        except Exception as exc:
            logger.warning("Error closing database client: %s", exc)
