# app/schemas/inventory/location_schemas.py

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.enums.location_type import LocationType


class LocationAddress(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class LocationContact(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class LocationOperatingHours(BaseModel):
    open: Optional[str] = None
    close: Optional[str] = None
    timezone: Optional[str] = None


class LocationCoordinates(BaseModel):
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class InventoryLocationCreate(BaseModel):
    code: str = Field(..., min_length=2, max_length=20)
    name: str = Field(..., min_length=2, max_length=100)
    type: LocationType = LocationType.warehouse
    capacity: Optional[int] = Field(None, ge=0)
    address: LocationAddress = LocationAddress()
    contact: LocationContact = LocationContact()
    operating_hours: LocationOperatingHours = LocationOperatingHours()
    coordinates: LocationCoordinates = LocationCoordinates()
    manager_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)


class InventoryLocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    type: Optional[LocationType] = None
    capacity: Optional[int] = Field(None, ge=0)
    manager_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)
    version: int


class InventoryLocationOut(BaseModel):
    id: int
    code: str
    name: str
    type: LocationType
    capacity: Optional[int]
    current_usage: int
    usage_percentage: int
    available_capacity: int

    address: LocationAddress
    contact: LocationContact
    operating_hours: LocationOperatingHours
    coordinates: LocationCoordinates
    manager_id: Optional[int]
    notes: Optional[str]

    is_active: bool
    version: int
    created_at: datetime
    updated_at: Optional[datetime]
    created_by: Optional[int]
    updated_by: Optional[int]

    class Config:
        from_attributes = True


class InventoryLocationListData(BaseModel):
    total: int
    items: List[InventoryLocationOut]
