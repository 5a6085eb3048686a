"""Shared enumerations and base model for WasteWatch domain models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire.

    Fields are declared in snake_case and accepted under either name.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_api(self) -> dict:
        """Serialize for a JSON response body."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# Enumerations
# =============================================================================


class WasteType(str, Enum):
    """Waste categories reported by citizens."""

    ORGANIC = "Organic"
    PLASTIC = "Plastic"
    MEDICAL = "Medical"
    E_WASTE = "E-Waste"
    GLASS = "Glass"
    METAL = "Metal"
    MIXED = "Mixed"


class ReportStatus(str, Enum):
    """Lifecycle state of a report."""

    PENDING = "Pending"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class Zone(str, Enum):
    """Fixed geographic partitions used for routing reports to workers."""

    CENTRAL = "Central Delhi"
    NORTH = "North Delhi"
    SOUTH = "South Delhi"
    EAST = "East Delhi"
    WEST = "West Delhi"


class Priority(str, Enum):
    """Dispatch priority derived from severity."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class HealthRisk(str, Enum):
    """Public health risk derived from waste type and severity."""

    NONE = "None"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


# =============================================================================
# Value Objects
# =============================================================================


class GeoLocation(CamelModel):
    """Where the waste was spotted."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: str | None = Field(default=None, max_length=300, description="Free-text address")
