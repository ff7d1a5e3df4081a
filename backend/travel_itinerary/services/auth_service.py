# backend/travel_itinerary/services/auth_service.py

from typing import Optional

from travel_itinerary.core.errors import InvalidCredentials, ValidationError
from travel_itinerary.core.guard import AuthorizationGuard
from travel_itinerary.core.logger import get_logger
from travel_itinerary.core.security import TokenService
from travel_itinerary.db.credential_store import CredentialStore
from travel_itinerary.models.user_models import AuthResult, UserRecord

logger = get_logger("auth")


class AuthService:
    def __init__(self, credentials: CredentialStore, tokens: TokenService, guard: AuthorizationGuard):
        self.credentials = credentials
        self.tokens = tokens
        self.guard = guard

    def register(self, email: Optional[str], password: Optional[str], name: Optional[str]) -> AuthResult:
        user = self.credentials.register(email, password, name)
        logger.info("Registered user %s", user.id)
        return AuthResult(token=self.tokens.issue(user.id), user=user)

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        if not email or not password:
            raise ValidationError("Email and password are required")
        try:
            user = self.credentials.verify(email, password)
        except InvalidCredentials:
            logger.info("Failed login attempt")
            raise
        return AuthResult(token=self.tokens.issue(user.id), user=user)

    def authenticate(self, token: Optional[str]) -> UserRecord:
        return self.guard.authenticate(token)
