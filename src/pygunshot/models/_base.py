"""Base model for backend payloads.

Every sensor/event model inherits from :class:`GunshotBaseModel` which
provides:

* A ``model_validator(mode="before")`` that strips sentinel values
  (``""``, ``"--"``, NaN) so the field default is used, or validation
  fails for required fields.
* A ``raw`` dict that captures the original payload. It is excluded from
  dumps and comparisons so two events decoded from differently shaped
  payloads still compare equal.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from pygunshot._constants import MICROS_PER_SECOND
from pygunshot.ingestion.normalize import to_epoch_micros

# Sentinel strings the backend uses for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


def parse_micros(value: Any) -> int | None:
    """Coerce an epoch timestamp in microseconds to ``int``.

    Accepts ints, integral floats, numeric strings and aware datetimes.
    Returns ``None`` for ``None``; raises ``ValueError`` for anything else so
    the owning model fails validation.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("timestamp must be numeric, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        return to_epoch_micros(value)
    if isinstance(value, str):
        value = value.strip()
        if value.lstrip("-").isdigit():
            return int(value)
    try:
        ts = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"timestamp must be numeric, got {value!r}") from exc
    if math.isnan(ts) or math.isinf(ts):
        raise ValueError("timestamp must be finite")
    return int(ts)


def micros_to_datetime(value: int) -> datetime:
    """Convert epoch microseconds to an aware UTC datetime."""
    seconds, micros = divmod(value, MICROS_PER_SECOND)
    return datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=micros)


EpochMicros = Annotated[int, BeforeValidator(parse_micros)]
"""Annotated type that coerces epoch microseconds (int/float/str/datetime) to ``int``."""

Latitude = Annotated[float, Field(ge=-90.0, le=90.0)]
Longitude = Annotated[float, Field(ge=-180.0, le=180.0)]


class GunshotBaseModel(BaseModel):
    """Base for backend payload models.

    Handles:
    * sentinel values (``""``, ``"--"``, NaN) → dropped before validation
    * stashes the original payload dict in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original payload dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = GunshotBaseModel._clean_dict(original)

        # Keep an explicitly passed raw= (kwargs construction) untouched.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GunshotBaseModel) or type(other) is not type(self):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    def __hash__(self) -> int:
        return hash((type(self), repr(self.model_dump())))
