from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Literal, List, Any, Dict
from datetime import datetime, timezone
from bson import ObjectId

# FoodShare Schemas
# Each class name lowercased becomes the collection name in MongoDB

UserType = Literal['donor', 'recipient']
DonationCategory = Literal['vegetarian', 'non-vegetarian', 'vegan', 'bakery']
DonationStatus = Literal['available', 'reserved', 'donated']


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """
    users collection
    Collection: "user"
    """
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address (unique)")
    password_hash: str = Field(..., description="Salted SHA256 password hash")
    user_type: UserType = Field(..., description="Account category")


class PublicUser(BaseModel):
    id: str
    name: str
    email: str
    user_type: str


############################
# Donations
############################

class GeoPoint(BaseModel):
    """GeoJSON point, coordinates are [longitude, latitude]."""
    type: Literal['Point'] = Field('Point', description="GeoJSON type tag")
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")

    @field_validator('coordinates')
    @classmethod
    def check_range(cls, v: List[float]) -> List[float]:
        lng, lat = v
        if not -180 <= lng <= 180:
            raise ValueError("longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return v


class DonationCreateRequest(BaseModel):
    donor: str = Field(..., description="Donor user id")
    category: DonationCategory = Field(..., description="Food category")
    description: str = Field(..., description="What is being donated")
    quantity: int = Field(..., ge=1, description="Number of portions")
    pickup_time: datetime = Field(..., description="Pickup date-time in ISO format")
    location: GeoPoint = Field(..., description="Pickup location")

    @field_validator('donor')
    @classmethod
    def check_donor(cls, v: str) -> str:
        if not ObjectId.is_valid(v):
            raise ValueError("donor must be a valid user id")
        return v

    @field_validator('description')
    @classmethod
    def trim_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be empty")
        return v


class Donation(DonationCreateRequest):
    """
    donations collection
    Collection: "donation"
    Indexed: location (2dsphere)
    """
    status: DonationStatus = Field('available', description="Donation status")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time")

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump()
        doc["donor"] = ObjectId(self.donor)
        return doc

