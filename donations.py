import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from database import create_document, get_documents
from schemas import Donation

logger = logging.getLogger(__name__)

# Status may only move forward
TRANSITIONS = {
    "available": "reserved",
    "reserved": "donated",
}


class DonationNotFoundError(Exception):
    pass


class InvalidTransitionError(Exception):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move donation from {current} to {requested}")
        self.current = current
        self.requested = requested


def to_object_id(id_str: str) -> ObjectId:
    """Raises bson InvalidId for malformed ids"""
    return ObjectId(id_str)


def serialize_doc(doc: Optional[Dict[str, Any]]):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
        elif isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc


class DonationStore:
    def __init__(self, collection: Collection):
        self.collection = collection

    def create(self, donation: Donation) -> Dict[str, Any]:
        doc = donation.to_document()
        new_id = create_document(self.collection, doc)
        logger.info("Donation %s created by %s", new_id, donation.donor)
        return serialize_doc(doc)

    def get(self, donation_id: str) -> Optional[Dict[str, Any]]:
        return serialize_doc(self.collection.find_one({"_id": to_object_id(donation_id)}))

    def nearby(self, lng: float, lat: float, max_distance: float = 5000,
               limit: int = 20, status: Optional[str] = "available") -> List[Dict[str, Any]]:
        """Donations closest to a point, nearest first, within max_distance meters"""
        filt: Dict[str, Any] = {
            "location": {
                "$near": {
                    "$geometry": {"type": "Point", "coordinates": [lng, lat]},
                    "$maxDistance": max_distance,
                }
            }
        }
        if status:
            filt["status"] = status
        docs = get_documents(self.collection, filt, limit)
        return [serialize_doc(d) for d in docs]

    def set_status(self, donation_id: str, new_status: str) -> Dict[str, Any]:
        oid = to_object_id(donation_id)
        doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise DonationNotFoundError(donation_id)
        current = doc.get("status", "available")
        if TRANSITIONS.get(current) != new_status:
            raise InvalidTransitionError(current, new_status)
        # Guard on the current status so two concurrent reservations cannot both win
        res = self.collection.update_one(
            {"_id": oid, "status": current},
            {"$set": {"status": new_status, "updated_at": datetime.now(timezone.utc)}},
        )
        if res.matched_count == 0:
            latest = self.collection.find_one({"_id": oid})
            if not latest:
                raise DonationNotFoundError(donation_id)
            raise InvalidTransitionError(latest.get("status", current), new_status)
        logger.info("Donation %s moved %s -> %s", donation_id, current, new_status)
        return serialize_doc(self.collection.find_one({"_id": oid}))

