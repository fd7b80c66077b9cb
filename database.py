"""
MongoDB access for FoodShare

The client connects lazily, so building a handle never touches the network.
Dates are read back timezone-aware (UTC).
"""
import logging
from datetime import datetime, timezone
from typing import Union, Optional, Dict, Any, List

from pydantic import BaseModel
from pymongo import MongoClient, ASCENDING, GEOSPHERE
from pymongo.collection import Collection
from pymongo.database import Database

logger = logging.getLogger(__name__)


def connect(database_url: Optional[str], database_name: Optional[str]) -> Optional[Database]:
    """Return a database handle, or None when the connection is not configured"""
    if not (database_url and database_name):
        logger.warning("DATABASE_URL / DATABASE_NAME not set, running without a database")
        return None
    client = MongoClient(database_url, tz_aware=True)
    return client[database_name]


def create_document(collection: Collection, data: Union[BaseModel, dict]) -> str:
    """Insert a single document with timestamps and return its id as a string

    A dict is stamped in place, so the caller sees created_at/updated_at/_id.
    """
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data
    now = datetime.now(timezone.utc)
    data_dict.setdefault("created_at", now)
    data_dict["updated_at"] = now
    result = collection.insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return str(result.inserted_id)


def get_documents(collection: Collection, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = collection.find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def ensure_indexes(database: Database) -> None:
    """Unique emails for users, spherical index for donation pickup points"""
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["donation"].create_index([("location", GEOSPHERE)])
    logger.info("Indexes ensured on %s", database.name)
