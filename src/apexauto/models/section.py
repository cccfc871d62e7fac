"""Content section models.

The ``content`` column is an open JSON blob whose meaningful keys depend
on the section type.  Each section type maps to its own content model
declaring the keys its renderer understands; keys nobody declared are
carried through untouched so newer editors never lose data written by
older ones (and vice versa).
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from apexauto.ingestion.normalize import safe_float, safe_int
from apexauto.models._base import ApexBaseModel


class SectionType(enum.StrEnum):
    HERO = "hero"
    SERVICES = "services"
    INVENTORY = "inventory"
    TESTIMONIALS = "testimonials"
    CONTACT = "contact"
    ABOUT = "about"
    FINANCE = "finance"
    TRUST = "trust"
    PROMO = "promo"
    MAP = "map"


class SectionContent(BaseModel):
    """Keys shared by every section renderer.

    Stored keys are camelCase (``buttonText``); attributes are snake_case.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    heading: str | None = None
    subheading: str | None = None
    description: str | None = None
    button_text: str | None = None
    button_link: str | None = None
    background_color: str | None = None
    text_color: str | None = None
    accent_color: str | None = None
    image_url: str | None = None

    def to_blob(self) -> dict[str, Any]:
        """Dump back to the stored camelCase shape, unknown keys included."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class HeroContent(SectionContent):
    background_image: str | None = None


class ServicesContent(SectionContent):
    services: list[dict[str, Any]] = Field(default_factory=list)


class InventoryContent(SectionContent):
    featured_count: int | None = None

    @field_validator("featured_count", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int | None:
        return safe_int(value)


class TestimonialsContent(SectionContent):
    testimonials: list[dict[str, Any]] = Field(default_factory=list)


class ContactContent(SectionContent):
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    hours: str | None = None


class AboutContent(SectionContent):
    story: str | None = None


class FinanceContent(SectionContent):
    rates: list[dict[str, Any]] = Field(default_factory=list)
    minimum_rate: float | None = None

    @field_validator("minimum_rate", mode="before")
    @classmethod
    def _coerce_rate(cls, value: Any) -> float | None:
        return safe_float(value)


class TrustContent(SectionContent):
    badges: list[str] = Field(default_factory=list)


class PromoContent(SectionContent):
    promo_code: str | None = None
    expires_at: str | None = None


class MapContent(SectionContent):
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    embed_url: str | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_coordinates(cls, value: Any) -> float | None:
        return safe_float(value)


_CONTENT_MODELS: dict[SectionType, type[SectionContent]] = {
    SectionType.HERO: HeroContent,
    SectionType.SERVICES: ServicesContent,
    SectionType.INVENTORY: InventoryContent,
    SectionType.TESTIMONIALS: TestimonialsContent,
    SectionType.CONTACT: ContactContent,
    SectionType.ABOUT: AboutContent,
    SectionType.FINANCE: FinanceContent,
    SectionType.TRUST: TrustContent,
    SectionType.PROMO: PromoContent,
    SectionType.MAP: MapContent,
}


def content_model_for(section_type: SectionType | str) -> type[SectionContent]:
    """Resolve the content variant for *section_type* (base model if unknown)."""
    try:
        return _CONTENT_MODELS[SectionType(section_type)]
    except ValueError:
        return SectionContent


def merge_content(content: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow-merge *updates* into *content* keyed by field name.

    Neither input is mutated.
    """
    merged = dict(content)
    merged.update(updates)
    return merged


class ContentSection(ApexBaseModel):
    """An editable homepage section as stored in ``content_sections``."""

    id: str = ""
    type: SectionType = Field(validation_alias=AliasChoices("type", "section_type"))
    title: str = ""
    visible: bool = True
    sort_order: int = 0
    content: SectionContent = Field(default_factory=SectionContent)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @field_validator("sort_order", mode="before")
    @classmethod
    def _coerce_sort_order(cls, value: Any) -> int:
        parsed = safe_int(value)
        return parsed if parsed is not None else 0

    @field_validator("content", mode="before")
    @classmethod
    def _resolve_content_variant(cls, value: Any, info: ValidationInfo) -> SectionContent:
        if isinstance(value, SectionContent):
            value = value.to_blob()
        if not isinstance(value, Mapping):
            value = {}
        section_type = info.data.get("type")
        model = content_model_for(section_type) if section_type is not None else SectionContent
        return model.model_validate(dict(value))

    def to_row(self) -> dict[str, Any]:
        """Dump the persisted columns (``section_type`` naming, no server columns)."""
        return {
            "section_type": self.type.value,
            "title": self.title,
            "visible": self.visible,
            "sort_order": self.sort_order,
            "content": self.content.to_blob(),
        }

    def to_record(self) -> dict[str, Any]:
        """Full row as plain JSON data, suitable for an editor buffer."""
        record = {"id": self.id, **self.to_row()}
        record["created_at"] = self.created_at.isoformat() if self.created_at else None
        record["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return record
