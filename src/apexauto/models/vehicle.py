"""Vehicle models."""

from __future__ import annotations

import enum
from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from apexauto._constants import DEFAULT_VEHICLE_IMAGE
from apexauto.ingestion.normalize import non_negative_or_none, safe_int, safe_str, unique_strings
from apexauto.models._base import ApexBaseModel, is_negative

#: Columns owned by the backend; never sent in insert/update payloads.
_SERVER_COLUMNS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})


class VehicleStatus(enum.StrEnum):
    """Lifecycle status of a vehicle listing."""

    AVAILABLE = "available"
    SOLD = "sold"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"

    @classmethod
    def _missing_(cls, value: object) -> VehicleStatus | None:
        # Rows edited by hand occasionally carry "Sold" / " available ".
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class VehicleSpecs(BaseModel):
    """Open performance spec mapping; unknown keys are preserved."""

    model_config = ConfigDict(frozen=True, extra="allow")

    hp: int | None = None
    """Horsepower."""
    torque: int | None = None
    """Torque in Nm."""
    acceleration: str | None = None
    """0-100 km/h time as displayed (e.g. ``"4.1s"``)."""

    @field_validator("hp", "torque", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)


class Vehicle(ApexBaseModel):
    """A vehicle listing as stored in the ``vehicles`` table."""

    _SENTINEL_RULES: ClassVar[dict[str, Callable[..., bool]]] = {
        "year": is_negative,
        "price": is_negative,
        "mileage": is_negative,
    }

    id: str = ""
    """Opaque row identifier."""
    make: str = ""
    model: str = ""
    year: int | None = None
    """Model year. ``None`` when the row carries a malformed value."""
    price: int | None = None
    """Asking price in the smallest currency unit."""
    mileage: int | None = None
    """Odometer reading in km."""
    vin: str | None = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    images: list[str] = Field(default_factory=list)
    specs: VehicleSpecs = Field(default_factory=VehicleSpecs)
    features: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    """Display tags; list order is display order."""
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("year", "price", "mileage", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("images", "features", "tags", mode="before")
    @classmethod
    def _coerce_string_lists(cls, value: Any) -> list[str]:
        return unique_strings(value)

    @field_validator("specs", mode="before")
    @classmethod
    def _coerce_specs(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, VehicleSpecs)) else {}

    @property
    def title(self) -> str:
        """Display title, e.g. ``"2022 BMW M3"``."""
        parts = [str(self.year) if self.year is not None else "", self.make, self.model]
        return " ".join(part for part in parts if part)

    def to_row(self) -> dict[str, Any]:
        """Dump the persisted column values (server-owned columns excluded)."""
        return self.model_dump(mode="json", exclude=set(_SERVER_COLUMNS))

    def to_record(self) -> dict[str, Any]:
        """Dump the full row, including id and timestamps, as plain JSON data."""
        return self.model_dump(mode="json")


class VehicleDraft(BaseModel):
    """Admin form submission for creating or replacing a vehicle.

    All identifying and pricing fields are required; the remainder
    default the same way the admin form does.
    """

    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
    )

    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    year: int = Field(ge=1886, le=2100)
    price: int = Field(ge=0)
    mileage: int = Field(ge=0)
    status: VehicleStatus
    vin: str | None = None
    images: list[str] = Field(default_factory=lambda: [DEFAULT_VEHICLE_IMAGE])
    specs: VehicleSpecs = Field(
        default_factory=lambda: VehicleSpecs(hp=300, torque=400, acceleration="5.0s"),
    )
    features: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    """Manually assigned tags; auto-derived tags are placed before these."""
    description: str | None = None

    @field_validator("vin", "description", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("images", mode="before")
    @classmethod
    def _default_images(cls, value: Any) -> list[str]:
        images = unique_strings(value)
        return images or [DEFAULT_VEHICLE_IMAGE]

    @field_validator("features", "tags", mode="before")
    @classmethod
    def _coerce_string_lists(cls, value: Any) -> list[str]:
        return unique_strings(value)

    @field_validator("price", "mileage", mode="before")
    @classmethod
    def _reject_malformed(cls, value: Any) -> Any:
        # Let pydantic report missing/blank values; only guard NaN/inf here.
        if value is None or value == "":
            return value
        parsed = non_negative_or_none(value)
        return parsed if parsed is not None else value

    def to_row(self, *, tags: list[str] | None = None) -> dict[str, Any]:
        """Build the insert payload, optionally overriding the tag list."""
        row = self.model_dump(mode="json")
        if tags is not None:
            row["tags"] = list(tags)
        return row
