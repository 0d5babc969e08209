from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
from enum import Enum

# --- Enumerations for Constrained Choices ---

class Amenity(str, Enum):
    WIFI = "WiFi"
    AC = "AC"
    FOOD = "Food"
    LAUNDRY = "Laundry"
    PARKING = "Parking"
    SECURITY = "Security"
    GYM = "Gym"
    STUDY_ROOM = "Study Room"
    TV = "TV"
    REFRIGERATOR = "Refrigerator"
    WASHING_MACHINE = "Washing Machine"
    HOT_WATER = "Hot Water"
    POWER_BACKUP = "Power Backup"
    CCTV = "CCTV"
    HOUSEKEEPING = "Housekeeping"

class Gender(str, Enum):
    BOYS = "boys"
    GIRLS = "girls"
    UNISEX = "unisex"

class RoomKind(str, Enum):
    SINGLE = "Single"
    DOUBLE = "Double"
    TRIPLE = "Triple"
    DORMITORY = "Dormitory"

class SortField(str, Enum):
    CREATED_AT = "createdAt"
    PRICE = "price"
    RATING = "rating"
    NAME = "name"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

# --- Sub-records ---

class Coordinates(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

class Location(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r"^[0-9]{6}$")
    coordinates: Optional[Coordinates] = None

class Price(BaseModel):
    monthly: int = Field(..., ge=1000, le=50000)
    deposit: int = Field(0, ge=0)

class RoomType(BaseModel):
    type: RoomKind
    available: int = Field(0, ge=0)
    price: int = Field(..., ge=1000)

class ListingImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)  # plain URL or base64 data URL
    caption: Optional[str] = None
    is_primary: bool = Field(False, alias="isPrimary")

class ContactInfo(BaseModel):
    phone: str = Field(..., pattern=r"^[0-9]{10}$")
    email: EmailStr

# --- Request Models ---

class PGListingFields(BaseModel):
    """Fields shared by create and update; everything optional here."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    location: Optional[Location] = None
    price: Optional[Price] = None
    amenities: Optional[List[Amenity]] = None
    gender: Optional[Gender] = None
    room_types: Optional[List[RoomType]] = Field(None, alias="roomTypes")
    images: Optional[List[ListingImage]] = None
    contact_info: Optional[ContactInfo] = Field(None, alias="contactInfo")
    rules: Optional[List[str]] = None
    is_available: Optional[bool] = Field(None, alias="isAvailable")

    @field_validator("gender", mode="before")
    @classmethod
    def lowercase_gender(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def to_record_fields(self, exclude_unset: bool = True) -> dict:
        """Snake-case column payload for PGListingRecord.apply"""
        data = self.model_dump(mode="json", exclude_unset=exclude_unset)
        if self.images is not None:
            data["images"] = [image.model_dump(mode="json", by_alias=True) for image in self.images]
        return data


class PGListingCreate(PGListingFields):
    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    location: Location
    price: Price
    amenities: List[Amenity] = []
    gender: Gender
    room_types: List[RoomType] = Field(default_factory=list, alias="roomTypes")
    images: List[ListingImage] = []
    contact_info: ContactInfo = Field(..., alias="contactInfo")
    rules: List[str] = []
    is_available: bool = Field(True, alias="isAvailable")


class PGListingUpdate(PGListingFields):
    """Partial update, only the fields sent are applied."""


# --- Query Models ---

class ListingFilters(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    location: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    gender: Optional[Gender] = None
    min_price: Optional[int] = Field(None, ge=0)
    max_price: Optional[int] = Field(None, ge=0)
    amenities: List[str] = []
    search: Optional[str] = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @field_validator("amenities", mode="before")
    @classmethod
    def split_amenities(cls, value):
        # "WiFi, AC" as sent on the query string
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value or []


class QuickSearch(BaseModel):
    q: Optional[str] = None
    location: Optional[str] = None
    gender: Optional[Gender] = None
    min_price: Optional[int] = Field(None, ge=0)
    max_price: Optional[int] = Field(None, ge=0)
    size: int = 20
