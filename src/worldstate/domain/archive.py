"""
Archive artifact model, key layout and pagination cursor.

An artifact is one generated image plus its JSON metadata record, both
stored under a date-partitioned key derived from the minute bucket:

    images/2025/11/14/DOOM_202511141234_abcdef12_0123456789ab.webp
    images/2025/11/14/DOOM_202511141234_abcdef12_0123456789ab.json

The metadata schema is validated at the storage boundary; anything that
does not parse is rejected with a :class:`ValidationError`.

Examples:
    >>> build_archive_key("2025-11-14T12:34", "DOOM_202511141234_abcdef12_0123456789ab.webp")
    'images/2025/11/14/DOOM_202511141234_abcdef12_0123456789ab.webp'
    >>> ArchiveCursor.decode(ArchiveCursor(ts=1763123640, id="DOOM_x").encode())
    ArchiveCursor(ts=1763123640, id='DOOM_x')

Tags:
    archive, metadata, schema, pagination
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from worldstate.core.errors import ValidationError
from worldstate.domain.tokens import SYMBOLS, VISUAL_PARAM_KEYS

IMAGES_PREFIX = "images/"
IMAGE_EXTENSION = ".webp"
METADATA_EXTENSION = ".json"
DEFAULT_PUBLIC_PREFIX = "/api/r2"

ARCHIVE_FILENAME_PATTERN = re.compile(r"^DOOM_\d{12}_[a-z0-9]{8}_[a-z0-9]{12}\.webp$")
_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


# =============================================================================
# KEY LAYOUT
# =============================================================================


@dataclass(frozen=True, slots=True)
class DatePrefix:
    year: str
    month: str
    day: str

    @property
    def prefix(self) -> str:
        return f"{IMAGES_PREFIX}{self.year}/{self.month}/{self.day}/"


def parse_date_prefix(date_string: str) -> DatePrefix:
    """
    Date partition of a ``YYYY-MM-DD`` string, a minute bucket or an ISO timestamp.

    Raises:
        ValidationError: If the string does not start with ``YYYY-MM-DD``
    """
    match = _DATE_PATTERN.match(date_string)
    if not match:
        raise ValidationError(
            f"Invalid date format: {date_string}. Expected YYYY-MM-DD or ISO timestamp.",
            field="date",
            value=date_string,
            constraint="YYYY-MM-DD",
        )
    year, month, day = match.groups()
    return DatePrefix(year, month, day)


def build_archive_key(date_string: str, filename: str) -> str:
    return f"{parse_date_prefix(date_string).prefix}{filename}"


def metadata_key_for(image_key: str) -> str:
    """Image key with its extension swapped to ``.json``."""
    return _strip_suffix(image_key, IMAGE_EXTENSION) + METADATA_EXTENSION


def build_public_path(key: str, prefix: str = DEFAULT_PUBLIC_PREFIX) -> str:
    """Public URL path of an object key; segments are not re-encoded."""
    return f"{prefix.rstrip('/')}/{key.lstrip('/')}"


def is_valid_archive_filename(filename: str) -> bool:
    return ARCHIVE_FILENAME_PATTERN.match(filename) is not None


def extract_id_from_filename(filename: str) -> str:
    """Artifact id: the filename without its ``.webp`` extension."""
    return _strip_suffix(filename, IMAGE_EXTENSION)


def _strip_suffix(value: str, suffix: str) -> str:
    return value[: -len(suffix)] if value.endswith(suffix) else value


# =============================================================================
# METADATA SCHEMA
# =============================================================================


class ArchiveMetadata(BaseModel):
    """Durable record of one generated artifact (JSON uses camelCase)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    timestamp: str = Field(..., description="ISO 8601, e.g. 2025-11-14T12:34:00Z")
    minute_bucket: str = Field(..., alias="minuteBucket")
    params_hash: str = Field(..., alias="paramsHash", pattern=r"^[0-9a-f]{8}$")
    seed: str = Field(..., pattern=r"^[0-9a-f]{12}$")
    mc_rounded: dict[str, float] = Field(..., alias="mcRounded")
    visual_params: dict[str, float] = Field(..., alias="visualParams")
    image_url: str = Field(..., alias="imageUrl")
    file_size: int = Field(..., alias="fileSize", ge=0)
    prompt: str
    negative: str

    @field_validator("mc_rounded")
    @classmethod
    def _caps_complete(cls, value: dict[str, float]) -> dict[str, float]:
        for symbol in SYMBOLS:
            cap = value.get(symbol)
            if cap is None or not math.isfinite(cap) or cap < 0:
                raise ValueError(f"mcRounded.{symbol} must be a finite non-negative number")
        return value

    @field_validator("visual_params")
    @classmethod
    def _params_in_range(cls, value: dict[str, float]) -> dict[str, float]:
        for key in VISUAL_PARAM_KEYS:
            param = value.get(key)
            if param is None or not math.isfinite(param) or not 0.0 <= param <= 1.0:
                raise ValueError(f"visualParams.{key} must be a number in [0, 1]")
        return value

    @classmethod
    def parse(cls, data: Any) -> ArchiveMetadata:
        """
        Validate untrusted data (decoded JSON, a dict or a model).

        Raises:
            ValidationError: On any missing field or out-of-range value
        """
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            field_path = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationError(
                "Invalid archive metadata structure",
                field=field_path or None,
                constraint=first.get("msg"),
                cause=e,
            ) from e

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# =============================================================================
# PAGINATION CURSOR
# =============================================================================


@dataclass(frozen=True, slots=True)
class ArchiveCursor:
    """Last-seen ``(ts, id)`` of a page; travels as an opaque base64 token."""

    ts: int
    id: str

    def encode(self) -> str:
        raw = json.dumps({"ts": self.ts, "id": self.id}, separators=(",", ":"))
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> ArchiveCursor:
        """
        Raises:
            ValidationError: If the token is not a cursor produced by ``encode``
        """
        try:
            payload = json.loads(base64.b64decode(token, validate=True).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise ValidationError("Malformed archive cursor", field="cursor", value=token, cause=e) from e
        if (
            not isinstance(payload, dict)
            or not isinstance(payload.get("ts"), int)
            or isinstance(payload.get("ts"), bool)
            or not isinstance(payload.get("id"), str)
        ):
            raise ValidationError(
                "Archive cursor must hold integer ts and string id",
                field="cursor",
                value=token,
            )
        return cls(ts=payload["ts"], id=payload["id"])


__all__ = [
    "IMAGES_PREFIX",
    "IMAGE_EXTENSION",
    "METADATA_EXTENSION",
    "DEFAULT_PUBLIC_PREFIX",
    "ARCHIVE_FILENAME_PATTERN",
    "DatePrefix",
    "parse_date_prefix",
    "build_archive_key",
    "metadata_key_for",
    "build_public_path",
    "is_valid_archive_filename",
    "extract_id_from_filename",
    "ArchiveMetadata",
    "ArchiveCursor",
]
