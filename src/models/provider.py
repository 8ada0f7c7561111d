from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import ProviderCategory
from src.models.location import Position


class Practitioner(BaseModel):
    """A doctor attached to a provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    specialization: str
    experience_years: int = Field(..., ge=0)
    rating: float = Field(..., ge=0.0, le=5.0)


class Provider(BaseModel):
    """A care facility in the directory.

    ``phone`` is ``None`` only for entries discovered through the nearby
    lookup service, which does not return contact numbers.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    category: ProviderCategory
    address: str
    phone: str | None = None
    bed_count: int = Field(default=0, ge=0)
    staff_count: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    position: Position
    practitioners: tuple[Practitioner, ...] = ()

    @property
    def search_fields(self) -> tuple[str, str, str]:
        """Lower-cased name, category label and address."""
        return self.name.lower(), self.category.label.lower(), self.address.lower()

    def matches(self, needle: str) -> bool:
        """True when any single search field contains the lower-cased ``needle``."""
        return any(needle in field for field in self.search_fields)
