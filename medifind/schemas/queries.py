from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_core import PydanticCustomError

from medifind.schemas.pharmacies import Location

ResultSort = Literal["distance", "stock"]

# Error type raised when only one of lat/lng is given
COORDINATE_PAIR_ERROR = "coordinate_pair"


class LocationParams(BaseModel):
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def validate_coordinate_pair(self) -> "LocationParams":
        """Ensure lat and lng are provided together."""
        if (self.lat is None) != (self.lng is None):
            raise PydanticCustomError(COORDINATE_PAIR_ERROR, "lat and lng must be provided together")
        return self

    @property
    def location(self) -> Optional[Location]:
        if self.lat is None or self.lng is None:
            return None
        return Location(lat=self.lat, lng=self.lng)


class SearchQueryParams(LocationParams):
    q: str = ""
    sort: ResultSort = "distance"
    in_stock_only: bool = False


__all__ = ["COORDINATE_PAIR_ERROR", "ResultSort", "LocationParams", "SearchQueryParams"]
