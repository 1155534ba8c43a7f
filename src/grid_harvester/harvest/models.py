"""Harvest result models."""

from __future__ import annotations

import json
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pandas as pd

from grid_harvester.grid import ParameterPoint
from grid_harvester.schemas import ErrorInfo

if TYPE_CHECKING:
    from grid_harvester.errors import SchemaMismatch

# =============================================================================
# Per-point result
# =============================================================================


@dataclass
class FetchResult:
    """Outcome of one grid point. ``records`` is empty whenever ``error`` is set."""

    point: ParameterPoint
    records: list[dict[str, Any]] = field(default_factory=list)
    error: ErrorInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "point": self.point.as_dict(),
            "records": self.records,
            "error": self.error.model_dump(mode="json") if self.error else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FetchResult:
        error = data.get("error")
        return cls(
            point=ParameterPoint(data["point"]),
            records=list(data.get("records") or []),
            error=ErrorInfo.model_validate(error) if error else None,
        )


# =============================================================================
# Table
# =============================================================================


def _json_safe(value: Any) -> Any:
    """Replace NaN and infinities with ``None`` so the output is strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


@dataclass
class HarvestTable:
    """Concatenated records; every row has every column (``None`` if absent)."""

    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def to_records(self) -> list[dict[str, Any]]:
        """Row dicts, copied so callers can mutate them freely."""
        return [dict(row) for row in self.rows]

    def to_json(self) -> str:
        """Deterministic JSON text; equal tables serialize to equal bytes.

        Non-finite floats are written as ``null``.
        """
        rows = [[_json_safe(row[c]) for c in self.columns] for row in self.rows]
        return json.dumps(
            {"columns": self.columns, "rows": rows},
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=str,
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Return the table as a ``pandas.DataFrame`` with columns in table order."""
        return pd.DataFrame.from_records(self.rows, columns=self.columns)


# =============================================================================
# Report
# =============================================================================


@dataclass
class HarvestReport:
    """Best-effort table plus the outcome of every grid point."""

    table: HarvestTable
    results: list[FetchResult]
    schema_mismatches: list[SchemaMismatch] = field(default_factory=list)
    cancelled: bool = False

    @property
    def failures(self) -> list[FetchResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def failed_points(self) -> list[ParameterPoint]:
        return [r.point for r in self.failures]

    @property
    def complete(self) -> bool:
        return not self.cancelled and not self.failures

    def manifest(self) -> list[dict[str, Any]]:
        """Failed points with error detail, in grid order, for selective retry."""
        return [
            {"point": r.point.as_dict(), **r.error.model_dump(mode="json")}
            for r in self.results
            if r.error is not None
        ]

    def summary(self) -> dict[str, Any]:
        kinds = Counter(str(r.error.kind) for r in self.failures if r.error)
        return {
            "points": len(self.results),
            "succeeded": len(self.results) - len(self.failures),
            "failed": len(self.failures),
            "errors": dict(sorted(kinds.items())),
            "rows": len(self.table),
            "columns": len(self.table.columns),
            "schema_mismatches": len(self.schema_mismatches),
            "cancelled": self.cancelled,
        }
