from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.coercion import coerce_number


class AssetResolution(BaseModel):
    """Photos found for one vehicle. ``gallery`` starts with ``primary`` when one exists."""
    primary: Optional[str] = None
    gallery: List[str] = Field(default_factory=list)
    folder: Optional[str] = None

    @property
    def secondary(self) -> List[str]:
        """Gallery without the primary photo."""
        if self.primary is None:
            return list(self.gallery)
        return [url for url in self.gallery if url != self.primary]


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    make: str = ""
    model: str = ""
    name: Optional[str] = None
    year: Optional[int] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    status: Optional[str] = None
    price_per_day: Optional[float] = None
    # stored references, kept as fallback when the bucket has nothing
    image_url: Optional[str] = None
    photo_gallery: List[str] = Field(default_factory=list)
    # resolved from the asset bucket
    primary_image: Optional[str] = None
    gallery: List[str] = Field(default_factory=list)
    # gallery without the primary photo
    secondary_images: List[str] = Field(default_factory=list)

    @field_validator("price_per_day", mode="before")
    def coerce_price(cls, v):
        return coerce_number(v)

    @field_validator("make", "model", mode="before")
    def none_to_empty(cls, v):
        return v or ""

    @field_validator("photo_gallery", mode="before")
    def normalize_stored_gallery(cls, v):
        if not isinstance(v, list):
            return []
        return [url for url in v if isinstance(url, str) and url]

    @property
    def display_name(self) -> str:
        return self.name or f"{self.make} {self.model}".strip()

    @property
    def brand(self) -> str:
        """Parent brand: 'Mercedes-AMG' -> 'Mercedes'."""
        source = (self.make or self.display_name).strip()
        if not source:
            return ""
        return source.split()[0].split("-")[0]
