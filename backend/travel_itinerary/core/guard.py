# backend/travel_itinerary/core/guard.py

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from travel_itinerary.core.errors import Forbidden, InvalidToken, Unauthenticated, UserNotFound
from travel_itinerary.core.logger import get_logger
from travel_itinerary.core.security import TokenService
from travel_itinerary.db.credential_store import CredentialStore
from travel_itinerary.models.itinerary_models import ItineraryRecord
from travel_itinerary.models.user_models import UserRecord

logger = get_logger("guard")

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Bounded retry with linear backoff for lookups against a store whose writes
    may not be visible to the next read yet (replica reads, eventual visibility).
    """
    attempts: int = 3
    delay_seconds: float = 0.1
    sleep: Callable[[float], None] = time.sleep

    def run(self, operation: Callable[[], Optional[T]]) -> Optional[T]:
        result = operation()
        for attempt in range(max(0, self.attempts)):
            if result is not None:
                break
            self.sleep(self.delay_seconds * (attempt + 1))
            result = operation()
        return result


class AuthorizationGuard:
    """Token → user resolution and owner checks. Holds no per-request state."""

    def __init__(
        self,
        tokens: TokenService,
        credentials: CredentialStore,
        retry: Optional[RetryPolicy] = None,
    ):
        self.tokens = tokens
        self.credentials = credentials
        self.retry = retry or RetryPolicy()

    def authenticate(self, token: Optional[str]) -> UserRecord:
        if not token:
            raise Unauthenticated()

        try:
            user_id = self.tokens.verify(token)
        except InvalidToken:
            logger.info("Rejected invalid or expired token")
            raise

        user = self.retry.run(lambda: self.credentials.get_by_id(user_id))
        if user is None:
            logger.info("Token subject %s does not resolve to a user", user_id)
            raise UserNotFound()
        return user

    @staticmethod
    def authorize_owner(resource: ItineraryRecord, identity: str) -> None:
        if str(resource.user_id) != str(identity):
            raise Forbidden()
