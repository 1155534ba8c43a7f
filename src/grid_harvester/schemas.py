"""
Domain models for grid harvester.

Pydantic models for credentials, tokens, per-point error details and job
definitions. Validation happens here, at the boundary, so the rest of the
pipeline can trust the shapes it receives.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from grid_harvester.errors import FetchError, ParseError
from grid_harvester.grid import ParameterAxis, Scalar

# =============================================================================
# Auth
# =============================================================================


class Credentials(BaseModel):
    """OAuth2 client id/secret pair. Immutable; the secret never prints."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    client_id: str = Field(..., min_length=1)
    client_secret: SecretStr

    @field_validator("client_secret")
    @classmethod
    def _secret_not_blank(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            msg = "client_secret must not be empty"
            raise ValueError(msg)
        return v


class Token(BaseModel):
    """Short-lived bearer token issued by the token endpoint."""

    model_config = {"frozen": True}

    access_token: str = Field(..., min_length=1)
    token_type: str = "Bearer"
    expires_at: datetime | None = None

    @classmethod
    def from_response(cls, payload: dict[str, Any], now: datetime | None = None) -> Token:
        """Build a token from a token-endpoint JSON body.

        ``expires_in`` (seconds) is converted to an absolute ``expires_at``.
        """
        now = now or datetime.now(UTC)
        expires_in = payload.get("expires_in")
        expires_at = None
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            expires_at = now + timedelta(seconds=expires_in)
        return cls(
            access_token=payload["access_token"],
            token_type=payload.get("token_type") or "Bearer",
            expires_at=expires_at,
        )

    def is_expired(self, margin: float = 0.0, now: datetime | None = None) -> bool:
        """True once ``now`` is within ``margin`` seconds of expiry."""
        if self.expires_at is None:
            return False
        now = now or datetime.now(UTC)
        return now >= self.expires_at - timedelta(seconds=margin)

    def __str__(self) -> str:
        # Keep the secret part out of logs and reprs
        return f"{self.token_type} ***{self.access_token[-4:]}"


# =============================================================================
# Per-point outcome
# =============================================================================


class ErrorKind(StrEnum):
    """Why a grid point produced no records."""

    FETCH = "fetch"
    PARSE = "parse"
    CANCELLED = "cancelled"


class ErrorInfo(BaseModel):
    """Error detail attached to a failed ``FetchResult``."""

    kind: ErrorKind
    message: str
    status_code: int | None = None

    @classmethod
    def from_exception(cls, exc: FetchError | ParseError) -> ErrorInfo:
        if isinstance(exc, FetchError):
            return cls(kind=ErrorKind.FETCH, message=str(exc), status_code=exc.status_code)
        return cls(kind=ErrorKind.PARSE, message=str(exc))


# =============================================================================
# Job definitions
# =============================================================================


class AxisSpec(BaseModel):
    """One axis of a job file: explicit ``values`` or an inclusive ``range``."""

    name: str = Field(..., min_length=1)
    values: list[Scalar] = Field(default_factory=list)
    range: tuple[int, int] | None = None

    @model_validator(mode="after")
    def _expand_range(self) -> AxisSpec:
        if self.range is not None:
            start, end = self.range
            if end < start:
                msg = f"range end before start for axis {self.name!r}"
                raise ValueError(msg)
            self.values = list(range(start, end + 1))
        if not self.values:
            msg = f"axis {self.name!r} needs values or a range"
            raise ValueError(msg)
        return self

    def to_axis(self) -> ParameterAxis:
        return ParameterAxis(self.name, tuple(self.values))


class HarvestJob(BaseModel):
    """A complete, credential-free description of one grid harvest."""

    name: str = Field(..., min_length=1, description="Used as the store file name")
    url: str = Field(..., description="URL template, e.g. https://api/x/{season}")
    method: Literal["GET", "POST"] = "GET"
    query: dict[str, Scalar] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: dict[str, Any] | None = None
    auth: Literal["bearer", "none"] = "bearer"
    scope: str | None = None

    axes: list[AxisSpec] = Field(..., min_length=1)
    records_key: str
    echo_fields: list[str] | None = Field(
        default=None, description="Response fields that override request values (default: axes)"
    )
    metadata_fields: list[str] = Field(default_factory=list)
    drop_fields: list[str] = Field(default_factory=list)
    rename_fields: dict[str, str] = Field(default_factory=dict)

    concurrency: int | None = Field(default=None, ge=1)
    valid_hours: float | None = Field(default=None, gt=0, description="Stored table freshness")

    @classmethod
    def from_file(cls, path: Path) -> HarvestJob:
        with path.open() as f:
            return cls.model_validate(json.load(f))

    def parameter_axes(self) -> list[ParameterAxis]:
        return [spec.to_axis() for spec in self.axes]
