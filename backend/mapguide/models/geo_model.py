from pydantic import BaseModel, ConfigDict, Field, model_validator

class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    lat: float
    lng: float

class BoundingBox(BaseModel):
    """Axis-aligned rectangle in degrees. Always non-degenerate."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    min_lat: float = Field(..., alias="minLat")
    max_lat: float = Field(..., alias="maxLat")
    min_lng: float = Field(..., alias="minLng")
    max_lng: float = Field(..., alias="maxLng")

    @model_validator(mode="after")
    def check_ordering(self):
        if self.min_lat >= self.max_lat or self.min_lng >= self.max_lng:
            raise ValueError(
                f"degenerate bounding box: lat {self.min_lat}..{self.max_lat}, "
                f"lng {self.min_lng}..{self.max_lng}"
            )
        return self

class ViewportState(BaseModel):
    model_config = ConfigDict(frozen=True)

    center: LatLng
    zoom: int
    bounds: BoundingBox
