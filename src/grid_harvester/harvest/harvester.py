"""
Grid harvester: one authenticated request per grid point, one table out.

Pipeline per point::

    token -> fetch_one(point, token) -> status check -> extract -> normalize

A failure at any step of one point (network, timeout, non-2xx, bad JSON,
missing records) is recorded on that point's ``FetchResult`` and the harvest
moves on. Only ``AuthError`` escapes: without a token nothing else can work.

Points may be fetched by a bounded thread pool. Results are slotted by grid
index, so the table order is the grid order whatever the completion order.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING

import requests

from grid_harvester.config import Settings, get_settings
from grid_harvester.errors import AuthError, FetchError, HarvestError, ParseError
from grid_harvester.grid import ParameterAxis, ParameterPoint, expand_grid
from grid_harvester.harvest.models import FetchResult, HarvestReport
from grid_harvester.harvest.normalize import (
    Extraction,
    RecordExtractor,
    build_table,
    normalize_records,
)
from grid_harvester.harvest.request import EndpointTemplate, FetchOne
from grid_harvester.schemas import ErrorInfo, ErrorKind, HarvestJob
from grid_harvester.services.http import create_session
from grid_harvester.services.oauth import TokenManager

if TYPE_CHECKING:
    from grid_harvester.schemas import Token

logger = logging.getLogger(__name__)

Extract = Callable[[requests.Response], Extraction]


def _check_status(response: requests.Response) -> None:
    code = response.status_code
    if not 200 <= code < 300:
        msg = f"HTTP {code} from {response.url}"
        raise FetchError(msg, status_code=code)


def _request(fetch_one: FetchOne, point: ParameterPoint, token: Token | None) -> requests.Response:
    try:
        return fetch_one(point, token)
    except requests.Timeout as exc:
        raise FetchError(f"Timed out: {exc}") from exc
    except requests.RequestException as exc:
        raise FetchError(f"Request failed: {exc}") from exc
    except HarvestError:
        raise
    except Exception as exc:
        # fetch_one is caller code; a bug in it fails this point only
        raise FetchError(f"Request failed: {type(exc).__name__}: {exc}") from exc


def _extract(extract: Extract, response: requests.Response) -> Extraction:
    try:
        return extract(response)
    except HarvestError:
        raise
    except Exception as exc:
        raise ParseError(f"Could not extract records: {type(exc).__name__}: {exc}") from exc


def fetch_point(
    point: ParameterPoint,
    fetch_one: FetchOne,
    extract: Extract,
    *,
    tokens: TokenManager | None = None,
    drop_fields: Iterable[str] = (),
    rename_fields: Mapping[str, str] | None = None,
) -> FetchResult:
    """
    Fetch, extract and normalize a single grid point.

    A 401 answer gets one retry with a freshly acquired token.

    Raises:
        AuthError: A token could not be (re)acquired.
    """
    token = tokens.current() if tokens is not None else None
    try:
        response = _request(fetch_one, point, token)
        if response.status_code == 401 and tokens is not None and token is not None:
            logger.info("401 for %s, retrying with a new token", point)
            tokens.invalidate(token)
            token = tokens.current()
            response = _request(fetch_one, point, token)
        _check_status(response)
        extraction = _extract(extract, response)
    except (FetchError, ParseError) as exc:
        logger.warning("Point %s failed: %s", point, exc)
        return FetchResult(point=point, error=ErrorInfo.from_exception(exc))

    records = normalize_records(
        extraction.records,
        point,
        extraction.tags,
        drop_fields=drop_fields,
        rename_fields=rename_fields,
    )
    logger.debug("Point %s: %d records", point, len(records))
    return FetchResult(point=point, records=records)


def _cancelled(point: ParameterPoint) -> FetchResult:
    return FetchResult(
        point=point,
        error=ErrorInfo(kind=ErrorKind.CANCELLED, message="Harvest cancelled before this point"),
    )


def harvest_points(
    points: Sequence[ParameterPoint],
    fetch_one: FetchOne,
    extract: Extract,
    drop_fields: Iterable[str] = (),
    *,
    tokens: TokenManager | None = None,
    rename_fields: Mapping[str, str] | None = None,
    concurrency: int = 1,
    cancel_event: threading.Event | None = None,
) -> HarvestReport:
    """Harvest an explicit list of points (e.g. the failures of an earlier run)."""
    drop = frozenset(drop_fields)
    if concurrency < 1:
        msg = f"concurrency must be >= 1, got {concurrency}"
        raise ValueError(msg)
    if isinstance(extract, RecordExtractor) and points:
        extract = extract.with_axes(points[0].keys())

    # Acquire up front: an AuthError aborts before any resource request
    if tokens is not None:
        tokens.current()

    def run(point: ParameterPoint) -> FetchResult:
        if cancel_event is not None and cancel_event.is_set():
            return _cancelled(point)
        return fetch_point(
            point,
            fetch_one,
            extract,
            tokens=tokens,
            drop_fields=drop,
            rename_fields=rename_fields,
        )

    logger.info("Harvesting %d points (concurrency=%d)", len(points), concurrency)
    slots: list[FetchResult | None] = [None] * len(points)

    if concurrency == 1 or len(points) <= 1:
        for i, point in enumerate(points):
            slots[i] = run(point)
    else:
        pool = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="harvest")
        try:
            futures = {pool.submit(run, point): i for i, point in enumerate(points)}
            for future in as_completed(futures):
                slots[futures[future]] = future.result()
        finally:
            # After an AuthError, points not yet started are dropped
            pool.shutdown(wait=True, cancel_futures=True)

    results = [r for r in slots if r is not None]
    table, mismatches = build_table(results)
    report = HarvestReport(
        table=table,
        results=results,
        schema_mismatches=mismatches,
        cancelled=any(r.error and r.error.kind == ErrorKind.CANCELLED for r in results),
    )
    logger.info("Harvest finished: %s", report.summary())
    return report


def harvest(
    axes: Sequence[ParameterAxis],
    fetch_one: FetchOne,
    extract: Extract,
    drop_fields: Iterable[str] = (),
    *,
    tokens: TokenManager | None = None,
    rename_fields: Mapping[str, str] | None = None,
    concurrency: int = 1,
    cancel_event: threading.Event | None = None,
) -> HarvestReport:
    """
    Harvest every point of the grid spanned by ``axes``.

    Args:
        axes: Parameter axes; the grid is their Cartesian product.
        fetch_one: ``(point, token) -> Response``, e.g. ``EndpointTemplate.fetcher``.
        extract: ``Response -> Extraction``, e.g. a ``RecordExtractor``.
        drop_fields: Record fields to remove.
        tokens: Token manager; ``None`` for unauthenticated endpoints.
        rename_fields: Record field renames applied after dropping.
        concurrency: Maximum simultaneous requests.
        cancel_event: Set it to stop starting new points.

    Returns:
        Report with the concatenated table and every point's outcome.

    Raises:
        AuthError: Token acquisition failed.
    """
    return harvest_points(
        expand_grid(axes),
        fetch_one,
        extract,
        drop_fields,
        tokens=tokens,
        rename_fields=rename_fields,
        concurrency=concurrency,
        cancel_event=cancel_event,
    )


# =============================================================================
# Job runner
# =============================================================================


def token_manager_for(job: HarvestJob, settings: Settings | None = None) -> TokenManager | None:
    """Token manager from configured credentials, or None for ``auth="none"`` jobs.

    Raises:
        AuthError: The job needs a token but credentials or token URL are missing.
    """
    if job.auth == "none":
        return None
    settings = settings or get_settings()
    if not settings.token_url:
        msg = "HARVEST_TOKEN_URL must be set for bearer-authenticated jobs"
        raise AuthError(msg)
    return TokenManager(
        settings.credentials(),
        settings.token_url,
        job.scope or settings.scope,
        refresh_margin=settings.token_refresh_margin,
    )


def run_job(
    job: HarvestJob,
    *,
    tokens: TokenManager | None = None,
    session: requests.Session | None = None,
    settings: Settings | None = None,
    points: Sequence[ParameterPoint] | None = None,
    cancel_event: threading.Event | None = None,
) -> HarvestReport:
    """
    Harvest a ``HarvestJob`` end to end.

    ``points`` restricts the run to a subset of the job's grid (retry).

    Raises:
        ValueError: The URL/query/body template references an unknown axis.
        AuthError: Token acquisition failed.
    """
    settings = settings or get_settings()
    axes = job.parameter_axes()
    axis_names = [axis.name for axis in axes]

    endpoint = EndpointTemplate.from_job(job)
    endpoint.validate(axis_names)

    concurrency = job.concurrency or settings.concurrency
    if tokens is None:
        tokens = token_manager_for(job, settings)
    if session is None:
        session = create_session(timeout=settings.timeout, pool_size=max(concurrency, 10))

    extractor = RecordExtractor(
        job.records_key,
        tuple(job.echo_fields) if job.echo_fields is not None else None,
        tuple(job.metadata_fields),
    ).with_axes(axis_names)

    return harvest_points(
        list(points) if points is not None else expand_grid(axes),
        endpoint.fetcher(session),
        extractor,
        job.drop_fields,
        tokens=tokens,
        rename_fields=job.rename_fields,
        concurrency=concurrency,
        cancel_event=cancel_event,
    )
