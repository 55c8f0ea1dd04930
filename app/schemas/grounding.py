from pydantic import BaseModel, Field


class GroundedPlace(BaseModel):
    """A place retrieved from the maps service for a coordinate pair"""

    formatted_address: str
    place_id: str | None = None
    types: list[str] = Field(default_factory=list)


class GroundingResult(BaseModel):
    """Free-text answer of the grounding collaborator plus the places it was grounded on"""

    text: str | None = None
    places: list[GroundedPlace] = Field(default_factory=list)
