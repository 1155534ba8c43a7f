"""
Prefect flows for running harvest jobs.

Run locally:
    python -m grid_harvester.flows.harvest jobs/weekly_stats.json

Run with Prefect dashboard:
    prefect server start &
    python -m grid_harvester.flows.harvest jobs/weekly_stats.json
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from prefect import flow, task
from prefect.cache_policies import NONE

from grid_harvester.config import get_settings
from grid_harvester.grid import ParameterPoint
from grid_harvester.harvest import HarvestReport, build_table, run_job
from grid_harvester.harvest.models import FetchResult
from grid_harvester.schemas import HarvestJob
from grid_harvester.store import HarvestStore

# Output store rooted at the configured data directory
store = HarvestStore(get_settings().data_dir)


# Freshness is decided by the store, never by Prefect input caching
@task(name="harvest-points", cache_policy=NONE)
def harvest_points_task(job: HarvestJob, points: list[dict[str, Any]] | None = None) -> HarvestReport:
    """Harvest the job's grid, or only ``points`` when given."""
    subset = [ParameterPoint(p) for p in points] if points is not None else None
    return run_job(job, points=subset)


@task(name="save-report", cache_policy=NONE)
def save_report(job: HarvestJob, report: HarvestReport) -> Path:
    """Save table and manifest via store."""
    valid_until = None
    if job.valid_hours is not None:
        valid_until = datetime.now(UTC) + timedelta(hours=job.valid_hours)
    table_path, _ = store.write_report(job.name, report, source=job.url, valid_until=valid_until)
    return table_path


def merge_results(previous: list[FetchResult], retried: HarvestReport) -> HarvestReport:
    """Replace previous results with retried ones, point by point, in grid order."""
    by_point = {r.point: r for r in retried.results}
    merged = [by_point.get(r.point, r) for r in previous]
    table, mismatches = build_table(merged)
    return HarvestReport(
        table=table,
        results=merged,
        schema_mismatches=mismatches,
        cancelled=retried.cancelled,
    )


@flow(name="harvest-grid", log_prints=True)
def harvest_flow(job: HarvestJob, force: bool = False) -> dict[str, Any]:
    """
    Harvest a job and store the result.

    Skips the network entirely when the stored table is still fresh.
    """
    table_path = store.table_path(job.name)
    if not force and store.is_fresh(table_path):
        print(f"Table for {job.name} is fresh, skipping harvest.")
        data = store.read(table_path) or {}
        return {"rows": len(data.get("rows", [])), "skipped": True}

    print(f"Harvesting {job.name} from {job.url}...")
    report = harvest_points_task(job)
    path = save_report(job, report)

    summary = report.summary()
    print(f"Saved {summary['rows']} rows ({summary['failed']} failed points) to {path}")
    return {**summary, "skipped": False}


@flow(name="retry-failed", log_prints=True)
def retry_failed_flow(job: HarvestJob) -> dict[str, Any]:
    """Re-harvest only the points that failed in the stored run of ``job``."""
    previous = store.read_results(job.name)
    if previous is None:
        print(f"No stored run for {job.name}; run the harvest first.")
        return {"retried": 0}

    failed = [r.point.as_dict() for r in previous if not r.ok]
    if not failed:
        print(f"No failed points for {job.name}.")
        return {"retried": 0}

    print(f"Retrying {len(failed)} failed points for {job.name}...")
    retried = harvest_points_task(job, points=failed)
    merged = merge_results(previous, retried)
    path = save_report(job, merged)

    summary = merged.summary()
    print(f"Saved {summary['rows']} rows ({summary['failed']} still failing) to {path}")
    return {**summary, "retried": len(failed)}


if __name__ == "__main__":
    result = harvest_flow(HarvestJob.from_file(Path(sys.argv[1])))
    print(f"Flow complete: {result}")
