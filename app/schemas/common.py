from pydantic import BaseModel, Field
from typing import Generic, Optional, TypeVar
from app.core.errors import ErrorKind
from app.services.optimization_engine.distance_matrix import Coordinate

T = TypeVar("T")

class Location(BaseModel):
    lat: float = Field(..., description="Latitude", ge=-90, le=90)
    lng: float = Field(..., description="Longitude", ge=-180, le=180)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)

    @classmethod
    def from_coordinate(cls, coordinate: Coordinate) -> "Location":
        return cls(lat=coordinate.lat, lng=coordinate.lng)

class ErrorBody(BaseModel):
    kind: ErrorKind
    message: str

class Envelope(BaseModel, Generic[T]):
    """Success/failure wrapper returned by every endpoint."""
    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorBody] = None
