"""
MongoDB connection and index setup.

Collections:

  users        : registered users (unique email, bcrypt password hash)
  itineraries  : trip plans owned by a user; optional unique share token
"""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from travel_itinerary.core.logger import get_logger

logger = get_logger("db")

USERS = "users"
ITINERARIES = "itineraries"


# ---------------------------------------------------------------------------
# Index blueprints
# ---------------------------------------------------------------------------

INDEXES: dict[str, list[IndexModel]] = {
    USERS: [
        IndexModel([("email", ASCENDING)], unique=True, name="email_unique"),
    ],
    ITINERARIES: [
        IndexModel(
            [("userId", ASCENDING), ("createdAt", DESCENDING)],
            name="user_created_desc",
        ),
        IndexModel([("destination", ASCENDING)], name="destination_asc"),
        IndexModel([("startDate", ASCENDING)], name="start_date_asc"),
        # Sparse: only itineraries that were shared carry a token.
        IndexModel(
            [("shareableId", ASCENDING)],
            unique=True,
            sparse=True,
            name="shareable_id_unique",
        ),
    ],
}


def connect(uri: str, db_name: str, timeout_ms: int = 5000) -> Database:
    """Return a database handle. The client connects lazily on first use."""
    client: MongoClient = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
    return client[db_name]


def ensure_indexes(db: Database) -> bool:
    """Create all indexes. Returns False (and logs) if the store is unreachable."""
    try:
        for collection, models in INDEXES.items():
            db[collection].create_indexes(models)
        logger.info("Indexes ensured on %s", db.name)
        return True
    except PyMongoError as exc:
        logger.error("Could not create indexes: %s", exc)
        return False


def ping(db: Database) -> bool:
    try:
        db.client.admin.command("ping")
        return True
    except Exception:
        return False
