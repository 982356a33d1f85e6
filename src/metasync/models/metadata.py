"""Metadata model: typed fields extracted from a document's frontmatter.

The model is decoded from the YAML header of a Markdown document and later
rendered as flat string attributes on the stored object. Attribute names use
kebab-case, header keys use camelCase.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FINGERPRINT_ATTRIBUTE = "metadata-last-update-sha1"

_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_TIMESTAMP = re.compile(
    r"\d{4}-\d{2}-\d{2}"
    r"([Tt ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?([Zz]|[+-]\d{2}:\d{2})?)?"
)


def validate_geolocation(value: str) -> None:
    """Check that a geolocation string is empty or ``"<x> <y> [areaError]"``.

    Raises:
        ValueError: If the string has the wrong number of tokens or a token
            is not a plain decimal number.
    """
    if value == "":
        return

    parts = value.split(" ")
    if len(parts) not in (2, 3):
        raise ValueError("invalid geolocation format, expecting '{x} {y} [areaError]' or an empty string")

    for label, part in zip(("X", "Y", "area error"), parts, strict=False):
        if not _DECIMAL.fullmatch(part):
            raise ValueError(f"invalid geolocation parameter, expected float for {label}: {part!r}")


def format_timestamp(value: datetime) -> str:
    """Render a datetime as RFC 3339 text with second precision.

    Naive datetimes are assumed to be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    text = value.replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


class Metadata(BaseModel):
    """Header fields of a single document.

    Every field is optional. Unknown header keys are ignored and keys with a
    null value are treated as absent.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    title: str = Field(default="", description="Short document title")
    short_description: str = Field(default="", alias="shortDescription", description="One-line summary")
    action_date: str = Field(default="", alias="actionDate", description="Free-form date of the described event")
    published_time: datetime | None = Field(default=None, alias="publishedTime", description="Publication timestamp")
    thumbnail: str = Field(default="", description="Opaque thumbnail reference (path or URL)")
    tags: list[str] = Field(default_factory=list, description="Tags in the order they were written")
    geolocation: str = Field(default="", description="'<x> <y>' or '<x> <y> <areaError>', or empty")
    timezone: str = Field(default="", description="Free-form timezone name")

    @model_validator(mode="before")
    @classmethod
    def _drop_null_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("published_time", mode="before")
    @classmethod
    def _parse_timestamp_text(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v
        if not isinstance(v, str) or not _TIMESTAMP.fullmatch(v):
            raise ValueError("expected an ISO 8601 timestamp such as 2024-05-02T08:30:00Z")
        return datetime.fromisoformat(v.upper())

    def published_time_text(self) -> str:
        """RFC 3339 text for ``published_time``, or an empty string when unset."""
        if self.published_time is None:
            return ""
        return format_timestamp(self.published_time)

    def to_attributes(self, fingerprint: str) -> dict[str, str]:
        """Build the object attributes published for this metadata.

        Args:
            fingerprint: SHA-1 hex digest of the content the metadata was
                extracted from.

        Returns:
            Mapping of attribute name to value, exactly the published schema.
        """
        return {
            "title": self.title,
            "short-description": self.short_description,
            "action-date": self.action_date,
            "published-time": self.published_time_text(),
            "thumbnail": self.thumbnail,
            "tags": ",".join(self.tags),
            "geolocation": self.geolocation,
            FINGERPRINT_ATTRIBUTE: fingerprint,
        }
