"""Base model for rows read from the remote store.

Every row model inherits from :class:`ApexBaseModel` which provides:

* A ``model_validator(mode="before")`` that strips sentinel values
  (``None``, blank strings, NaN) so the field default is used.
* A ``raw`` dict that captures the original row.
* Post-construction sentinel normalisation via ``_SENTINEL_RULES``.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Shared sentinel predicates
# ---------------------------------------------------------------------------


def is_negative(value: int | float) -> bool:
    """Return ``True`` when *value* is negative."""
    return value < 0


class ApexBaseModel(BaseModel):
    """Base for row models.

    Handles:
    * sentinel values (``None``, ``""``, NaN) → dropped so the field
      default is used instead
    * Stashes the original row dict in ``raw``
    * Post-construction sentinel normalisation via ``_SENTINEL_RULES``
    """

    _SENTINEL_RULES: ClassVar[dict[str, Callable[..., bool]]] = {}
    """Per-field sentinel predicates.

    Subclasses override this to declare ``{"field_name": predicate}``
    pairs.  After model construction the base ``_normalise_sentinels``
    validator sets the field to ``None`` when *predicate(value)* is
    ``True``.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original row dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_row_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw row."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = ApexBaseModel._clean_dict(original)

        # Only auto-stash raw when not explicitly provided (i.e. model_validate
        # from a row).  When constructing with kwargs that include raw=,
        # keep the caller's value.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned

    @model_validator(mode="after")
    def _normalise_sentinels(self) -> ApexBaseModel:
        """Replace per-field sentinel values with ``None``."""
        sentinel_rules: dict[str, Callable[..., bool]] = getattr(type(self), "_SENTINEL_RULES", {})
        for field_name, predicate in sentinel_rules.items():
            val = getattr(self, field_name, None)
            if val is not None and predicate(val):
                object.__setattr__(self, field_name, None)
        return self
