# backend/travel_itinerary/core/security.py

import jwt
import bcrypt
from datetime import datetime, timedelta, timezone

from travel_itinerary.core.errors import InvalidToken


ALGORITHM = "HS256"
DEFAULT_EXPIRE_MINUTES = 7 * 24 * 60


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------
def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# ---------------------------------------------------------------------------
# TOKENS
# ---------------------------------------------------------------------------
class TokenService:
    """
    Issues and verifies signed identity tokens.

    A token carries the user id as ``sub`` plus ``iat``/``exp``. Tokens are
    stateless: there is no blacklist and no refresh.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = ALGORITHM,
        expires_minutes: int = DEFAULT_EXPIRE_MINUTES,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_minutes = expires_minutes

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(minutes=self.expires_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        try:
            decoded = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as exc:
            raise InvalidToken() from exc

        user_id = decoded.get("sub")
        if not user_id:
            raise InvalidToken()
        return user_id


def bearer_token(authorization: str) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return ""
    return authorization.split(" ", 1)[1].strip()
