"""Weekly player-stats data source.

Harvests per-player weekly stats across a week x season grid with a bearer
token from the client-credentials flow.

Public API:
  - job: weekly_stats_job (HarvestJob factory)
  - client: API URL, static headers, records key, dropped fields
"""

from grid_harvester.datasources.weekly_stats.client import WEEKLY_STATS_API, WEEKS
from grid_harvester.datasources.weekly_stats.job import weekly_stats_job

__all__ = [
    "WEEKLY_STATS_API",
    "WEEKS",
    "weekly_stats_job",
]
