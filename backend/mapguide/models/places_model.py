from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from enum import Enum
from datetime import datetime

class PlaceStatus(str, Enum):
    PENDING = "PENDING"
    VISITED = "VISITED"

class CategorySummary(BaseModel):
    id: int
    name: str
    icon: Optional[str] = None

class UserSummary(BaseModel):
    id: int
    name: str

class SavedPlace(BaseModel):
    """A place as the place-storage API returns it. Read-mostly here."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str
    lat: float
    lng: float
    status: PlaceStatus = PlaceStatus.PENDING
    category: Optional[CategorySummary] = None
    notes: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    favorite: bool = False
    created_by: Optional[UserSummary] = Field(default=None, alias="createdBy")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    visited_at: Optional[datetime] = Field(default=None, alias="visitedAt")

class PlaceCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    lat: float
    lng: float
    status: PlaceStatus = PlaceStatus.PENDING
    notes: Optional[str] = None
    address: Optional[str] = None
    category_id: Optional[int] = Field(default=None, alias="categoryId")

class PlaceUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    notes: Optional[str] = None
    address: Optional[str] = None
    status: Optional[PlaceStatus] = None
    visited_at: Optional[datetime] = Field(default=None, alias="visitedAt")
    category_id: Optional[int] = Field(default=None, alias="categoryId")

class Photo(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    url: str
    caption: Optional[str] = None
    user: Optional[UserSummary] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

class PlacePage(BaseModel):
    content: List[SavedPlace] = []
    total_elements: int = Field(default=0, alias="totalElements")
