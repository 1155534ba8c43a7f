"""
Prefect flows for the harvest pipeline.

Flows:
- harvest-grid: Harvest a job's full grid and store table + manifest
- retry-failed: Re-harvest only the failed points of the stored run

Usage (local):
    python -m grid_harvester.flows.harvest jobs/weekly_stats.json

Usage (CLI):
    grid-harvester harvest --job jobs/weekly_stats.json
    grid-harvester retry --job jobs/weekly_stats.json
"""
