"""Grid Harvester - pull authenticated JSON APIs across a parameter grid into one table.

Architecture::

    config.py      Settings from environment / .env (credentials, token URL, limits)
    grid.py        Parameter axes and pure Cartesian grid expansion
    services/      Shared HTTP session with retry, OAuth2 client-credentials tokens
    harvest/       Request templating, per-point fetch, normalization, concatenation
    store.py       Enveloped JSON persistence of tables and failure manifests
    flows/         Prefect orchestration (harvest a job, retry failed points)
    datasources/   Ready-made jobs for specific APIs

Data flow: token -> grid points -> fetch -> extract/normalize -> table (+ manifest) -> store

Extension points:
  - New API:        datasources/__init__.py
  - New job file:   schemas.HarvestJob (JSON, see ``grid-harvester harvest --job``)
"""

__version__ = "0.1.0"
__author__ = "Michael Howden"

from grid_harvester.config import Settings
from grid_harvester.errors import AuthError, FetchError, ParseError
from grid_harvester.grid import ParameterAxis, ParameterPoint, expand_grid
from grid_harvester.harvest import HarvestReport, HarvestTable, harvest

__all__ = [
    "AuthError",
    "FetchError",
    "HarvestReport",
    "HarvestTable",
    "ParameterAxis",
    "ParameterPoint",
    "ParseError",
    "Settings",
    "__version__",
    "expand_grid",
    "harvest",
]
