"""Harvest output store with freshness-aware metadata.

Manages JSON files in two tiers:
  - tables/: Harvested tables plus every point's records, so a later retry
    can replace just the failed points and rebuild the table in grid order
  - manifests/: Summary and failed points of the latest run of a job

Every file is wrapped in a metadata envelope::

    {"meta": {"source": ..., "fetched_at": ..., "valid_until": ...}, "data": ...}

so a flow can skip a job whose table is still fresh.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003
from typing import Any

from grid_harvester.harvest.models import FetchResult, HarvestReport

logger = logging.getLogger(__name__)


class HarvestStore:
    """Reads and writes enveloped harvest outputs under ``base_dir``."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.tables = base_dir / "tables"
        self.manifests = base_dir / "manifests"

    # -- generic envelope I/O -------------------------------------------------

    def read(self, path: Path) -> Any | None:
        """Read the ``data`` payload of an enveloped file, or None if missing."""
        envelope = self.read_raw(path)
        if envelope is None:
            return None
        return envelope.get("data", envelope)

    def read_raw(self, path: Path) -> dict[str, Any] | None:
        """Read the full envelope (meta + data)."""
        full = self._resolve(path)
        if not full.exists():
            return None
        with full.open() as f:
            result: dict[str, Any] = json.load(f)
        return result

    def write(
        self,
        path: Path,
        data: Any,
        source: str,
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Write data wrapped in a metadata envelope.

        Args:
            path: Relative path under base_dir (e.g. ``tables/stats.json``).
            data: Payload stored under the ``data`` key.
            source: Where the data came from (endpoint URL or job name).
            valid_until: Expiry timestamp. None means never fresh.
            **params: Extra metadata fields (job name, grid size, ...).

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        meta: dict[str, Any] = {
            "source": source,
            "fetched_at": datetime.now(UTC).isoformat(),
        }
        if valid_until is not None:
            meta["valid_until"] = valid_until.isoformat()
        if params:
            meta.update(params)

        with full.open("w") as f:
            json.dump({"meta": meta, "data": data}, f, indent=2, default=str)
        return full

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full

    def is_fresh(self, path: Path) -> bool:
        """True if the file exists and its ``valid_until`` is in the future."""
        envelope = self.read_raw(path)
        if envelope is None:
            return False
        valid_until = envelope.get("meta", {}).get("valid_until")
        if valid_until is None:
            return False

        expiry = datetime.fromisoformat(valid_until)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return datetime.now(UTC) < expiry

    # -- harvest reports --------------------------------------------------------

    @staticmethod
    def table_path(name: str) -> Path:
        return Path("tables") / f"{name}.json"

    @staticmethod
    def manifest_path(name: str) -> Path:
        return Path("manifests") / f"{name}.json"

    def write_report(
        self,
        name: str,
        report: HarvestReport,
        source: str,
        valid_until: datetime | None = None,
    ) -> tuple[Path, Path]:
        """Persist a report as a table file and a manifest file.

        A table is only marked fresh (``valid_until``) when every point
        succeeded; a partial table should be retried, not reused.
        """
        table_data = {
            "columns": report.table.columns,
            "rows": report.table.to_records(),
            "results": [r.to_dict() for r in report.results],
        }
        table_file = self.write(
            self.table_path(name),
            table_data,
            source=source,
            valid_until=valid_until if report.complete else None,
            job=name,
            points=len(report.results),
        )
        manifest_file = self.write(
            self.manifest_path(name),
            {"summary": report.summary(), "failures": report.manifest()},
            source=source,
            job=name,
        )
        logger.info("Stored %d rows for %s at %s", len(report.table), name, table_file)
        return table_file, manifest_file

    def read_results(self, name: str) -> list[FetchResult] | None:
        """Per-point results of the last stored run of ``name``."""
        data = self.read(self.table_path(name))
        if data is None:
            return None
        return [FetchResult.from_dict(r) for r in data.get("results", [])]

    def read_manifest(self, name: str) -> list[dict[str, Any]] | None:
        """Failed points (with error detail) of the last stored run of ``name``."""
        data = self.read(self.manifest_path(name))
        if data is None:
            return None
        failures: list[dict[str, Any]] = data.get("failures", [])
        return failures
