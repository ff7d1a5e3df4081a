# backend/travel_itinerary/db/credential_store.py

from typing import Optional

from bson import ObjectId
from email_validator import EmailNotValidError, validate_email
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from travel_itinerary.core.errors import DuplicateEmail, InvalidCredentials, ValidationError
from travel_itinerary.core.security import get_password_hash, verify_password
from travel_itinerary.models.user_models import UserRecord
from travel_itinerary.utils.time_utils import utcnow

MIN_PASSWORD_LENGTH = 6
# bcrypt only reads the first 72 bytes
MAX_PASSWORD_BYTES = 72


class CredentialStore:
    """User identities and password hashes."""

    def __init__(self, collection: Collection):
        self.users = collection

    # ----------------------------------------------------------------------
    # REGISTER
    # ----------------------------------------------------------------------
    def register(self, email: Optional[str], password: Optional[str], name: Optional[str]) -> UserRecord:
        email = (email or "").strip()
        name = (name or "").strip()

        if not email:
            raise ValidationError("Email is required", field="email")
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationError("Please provide a valid email", field="email")
        if not password:
            raise ValidationError("Password is required", field="password")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes",
                field="password",
            )
        if not name:
            raise ValidationError("Name is required", field="name")

        if self.users.find_one({"email": email}, {"_id": 1}):
            raise DuplicateEmail()

        now = utcnow()
        doc = {
            "email": email,
            "password": get_password_hash(password),
            "name": name,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            result = self.users.insert_one(doc)
        except DuplicateKeyError:
            # lost a race with a concurrent registration
            raise DuplicateEmail()

        doc["_id"] = result.inserted_id
        return UserRecord.from_document(doc)

    # ----------------------------------------------------------------------
    # VERIFY
    # ----------------------------------------------------------------------
    def verify(self, email: str, password: str) -> UserRecord:
        doc = self.users.find_one({"email": (email or "").strip()})
        if not doc or not verify_password(password, doc.get("password", "")):
            raise InvalidCredentials()
        return UserRecord.from_document(doc)

    # ----------------------------------------------------------------------
    # LOOKUP
    # ----------------------------------------------------------------------
    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        if not ObjectId.is_valid(user_id):
            return None
        doc = self.users.find_one({"_id": ObjectId(user_id)})
        return UserRecord.from_document(doc) if doc else None
