# backend/travel_itinerary/models/user_models.py

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from travel_itinerary.utils.time_utils import to_iso


# -------------------------
# Registration model
# -------------------------
class RegisterIn(BaseModel):
    # presence and format are checked by the credential store so that
    # both transports report the same messages
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


# -------------------------
# Login model
# -------------------------
class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


# -------------------------
# Stored user
# -------------------------
class UserRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    email: str
    name: str
    password_hash: str = Field(alias="password", repr=False)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserRecord":
        return cls.model_validate({**doc, "_id": str(doc["_id"])})

    def to_public(self) -> Dict[str, Any]:
        """User payload for responses. Never includes the password hash."""
        return {
            "_id": self.id,
            "email": self.email,
            "name": self.name,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


class AuthResult(BaseModel):
    token: str
    user: UserRecord
