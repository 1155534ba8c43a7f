"""Grid harvesting.

Public API:
  - harvester: harvest, harvest_points, fetch_point, run_job
  - request: EndpointTemplate (per-point URL/query/body/headers)
  - normalize: RecordExtractor, normalize_records, build_table
  - models: FetchResult, HarvestTable, HarvestReport
"""

from grid_harvester.harvest.harvester import fetch_point, harvest, harvest_points, run_job
from grid_harvester.harvest.models import FetchResult, HarvestReport, HarvestTable
from grid_harvester.harvest.normalize import (
    Extraction,
    RecordExtractor,
    build_table,
    normalize_records,
)
from grid_harvester.harvest.request import EndpointTemplate

__all__ = [
    "EndpointTemplate",
    "Extraction",
    "FetchResult",
    "HarvestReport",
    "HarvestTable",
    "RecordExtractor",
    "build_table",
    "fetch_point",
    "harvest",
    "harvest_points",
    "normalize_records",
    "run_job",
]
