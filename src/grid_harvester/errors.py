"""
Harvest error types.

Only ``AuthError`` aborts a harvest. ``FetchError`` and ``ParseError`` are
raised inside the per-point pipeline, caught by the harvester and recorded
on that point's ``FetchResult``. ``SchemaMismatch`` is informational: the
table resolves differing field sets by union, so it is collected on the
report and never raised by ``harvest()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grid_harvester.grid import ParameterPoint


class HarvestError(Exception):
    """Base class for all harvester errors."""


class AuthError(HarvestError):
    """Token acquisition failed. Nothing downstream can succeed."""


class FetchError(HarvestError):
    """Request for one grid point failed (network, timeout, non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ParseError(HarvestError):
    """Response body was not JSON or did not have the expected shape."""


class SchemaMismatch(HarvestError):
    """A point's records carry a different field set than earlier points."""

    def __init__(
        self,
        point: ParameterPoint,
        missing: frozenset[str],
        extra: frozenset[str],
    ) -> None:
        self.point = point
        self.missing = missing
        self.extra = extra
        super().__init__(
            f"{point}: missing {sorted(missing)}, new {sorted(extra)}"
        )
