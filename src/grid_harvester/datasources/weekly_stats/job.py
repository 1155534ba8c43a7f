"""Week x season harvest job for the weekly player-stats API."""

from __future__ import annotations

from collections.abc import Sequence

from grid_harvester.datasources.weekly_stats import client
from grid_harvester.schemas import AxisSpec, HarvestJob


def weekly_stats_job(
    seasons: Sequence[int],
    weeks: Sequence[int] | None = None,
    *,
    base_url: str = client.WEEKLY_STATS_API,
    name: str = "weekly-stats",
    concurrency: int | None = None,
) -> HarvestJob:
    """
    Build the job harvesting every (season, week) combination.

    Args:
        seasons: Season years, outer axis.
        weeks: Week numbers, inner axis (default: regular season 1-18).
        base_url: Endpoint override (e.g. a staging host).
        name: Store name for the resulting table.
        concurrency: Parallel requests (default: from settings).
    """
    return HarvestJob(
        name=name,
        url=base_url,
        query={"season": "{season}", "week": "{week}"},
        headers=dict(client.STATIC_HEADERS),
        axes=[
            AxisSpec(name="season", values=list(seasons)),
            AxisSpec(name="week", values=list(weeks or client.WEEKS)),
        ],
        records_key=client.RECORDS_KEY,
        drop_fields=list(client.DROP_FIELDS),
        concurrency=concurrency,
        valid_hours=24,
    )
