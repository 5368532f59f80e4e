from pydantic import Field, field_validator
from typing import List, Optional, Literal
from datetime import datetime
import re

from realty_api.models.base import CamelModel, TimestampedModel

# Status enums
ListingStatus = Literal[
    "ACTIVE",
    "PENDING",
    "CONTINGENT",
    "SOLD",
    "WITHDRAWN",
    "EXPIRED",
    "OFF_MARKET"
]

ACTIVE_STATUS = "ACTIVE"

# Columns returned by GET /listings/recent
RECENT_LISTING_COLUMNS = (
    "id, address, city, state, price, bedrooms, bathrooms, square_feet, "
    "property_type, photo_urls, status, created_at"
)

# Columns matched (case-insensitively) by the listing search
SEARCH_COLUMNS = ("address", "city", "state", "zip_code", "property_type")

class ListingBase(CamelModel):
    address: str = Field(..., min_length=1, max_length=200, description="Street address")
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=2, max_length=50)
    zip_code: Optional[str] = Field(None, description="Postal code")
    price: float = Field(..., ge=0, description="Asking price")
    bedrooms: int = Field(..., ge=0)
    bathrooms: float = Field(..., ge=0)
    square_feet: Optional[int] = Field(None, ge=0)
    property_type: str = Field(..., description="Property type, e.g. SINGLE_FAMILY or CONDO")
    photo_urls: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    status: ListingStatus = ACTIVE_STATUS
    denormalized_assumable_loan_type: Optional[str] = Field(
        None,
        description="Cached assumable loan type label (e.g. FHA, VA)"
    )

    @field_validator('photo_urls', mode='before')
    def default_photo_urls(cls, v):
        return [] if v is None else v

    @field_validator('zip_code')
    def validate_zip_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        if not re.match(r'^\d{5}(-\d{4})?$', v.strip()):
            raise ValueError('Zip code must be 5 digits, optionally followed by -XXXX')
        return v.strip()

class ListingCreate(ListingBase):
    pass

class ListingUpdate(CamelModel):
    id: str = Field(..., min_length=1)
    address: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=2, max_length=50)
    zip_code: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[float] = Field(None, ge=0)
    square_feet: Optional[int] = Field(None, ge=0)
    property_type: Optional[str] = None
    photo_urls: Optional[List[str]] = None
    description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    status: Optional[ListingStatus] = None
    denormalized_assumable_loan_type: Optional[str] = None

class ListingResponse(ListingBase, TimestampedModel):
    id: str
    last_status_change: Optional[datetime] = None

class RecentListing(CamelModel):
    """Fixed projection served by GET /listings/recent"""
    id: str
    address: str
    city: str
    state: str
    price: float
    bedrooms: int
    bathrooms: float
    square_feet: Optional[int] = None
    property_type: str
    photo_urls: List[str] = Field(default_factory=list)
    status: ListingStatus
    created_at: datetime

    @field_validator('photo_urls', mode='before')
    def default_photo_urls(cls, v):
        return [] if v is None else v

class MessageResponse(CamelModel):
    message: str
