from pydantic import BaseModel, Field


class Location(BaseModel):
    """A lat/lng pair (stored as a Firestore GeoPoint)."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
