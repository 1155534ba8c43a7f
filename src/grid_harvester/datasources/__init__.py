"""Ready-made harvest jobs for specific APIs.

Each subdirectory is one API with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # URLs, headers, records key, fields to drop
    └── job.py            # Factory returning a ``HarvestJob``

Adding a new datasource
-----------------------
1. Create ``datasources/{name}/`` with the files above.
   See ``weekly_stats/`` for a week x season example.

2. Write a factory that returns a ``HarvestJob``::

       from grid_harvester.schemas import AxisSpec, HarvestJob

       def my_job(years: list[int]) -> HarvestJob:
           return HarvestJob(
               name="my-api",
               url=API_URL,
               query={"year": "{year}"},
               axes=[AxisSpec(name="year", values=years)],
               records_key="data",
           )

3. Re-export the factory in ``__init__.py`` with ``__all__``.

4. Run it with ``run_job(job)`` or the ``harvest-grid`` flow, or dump it
   with ``job.model_dump_json(indent=2)`` and use ``grid-harvester harvest --job``.

5. Add tests in ``tests/test_{name}.py``.
"""
