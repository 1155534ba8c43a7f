"""Response extraction, record normalization and table concatenation.

Response bodies are validated at this boundary: anything that is not a JSON
object carrying a list of objects under the records key becomes a
``ParseError`` here, not a ``KeyError`` three steps later.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from grid_harvester.errors import ParseError, SchemaMismatch
from grid_harvester.harvest.models import FetchResult, HarvestTable

if TYPE_CHECKING:
    import requests

    from grid_harvester.grid import ParameterPoint

logger = logging.getLogger(__name__)

Record = dict[str, Any]

_records_adapter: TypeAdapter[list[dict[str, Any]]] = TypeAdapter(list[dict[str, Any]])


@dataclass
class Extraction:
    """Records pulled from one response plus response-level tag fields."""

    records: list[Record]
    tags: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecordExtractor:
    """
    Pull the record list and echoed metadata out of a JSON response.

    Args:
        records_key: Top-level key holding the list of records.
        echo_fields: Top-level fields the API echoes back (e.g. ``season``,
            ``week``). ``None`` means "the grid's axis names".
        metadata_fields: Extra top-level fields to copy onto every record.
    """

    records_key: str
    echo_fields: tuple[str, ...] | None = None
    metadata_fields: tuple[str, ...] = ()

    def with_axes(self, axis_names: Iterable[str]) -> RecordExtractor:
        """Resolve the default echo fields to the given axis names."""
        if self.echo_fields is not None:
            return self
        return RecordExtractor(self.records_key, tuple(axis_names), self.metadata_fields)

    def __call__(self, response: requests.Response) -> Extraction:
        try:
            body = response.json()
        except ValueError as exc:
            raise ParseError(f"Response is not valid JSON: {exc}") from exc
        return self.extract_body(body)

    def extract_body(self, body: Any) -> Extraction:
        """
        Validate a decoded body and split it into records and tags.

        Raises:
            ParseError: Body is not an object, the records key is missing,
                or its value is not a list of objects.
        """
        if not isinstance(body, dict):
            msg = f"Expected a JSON object, got {type(body).__name__}"
            raise ParseError(msg)
        if self.records_key not in body:
            msg = f"Response has no {self.records_key!r} field"
            raise ParseError(msg)
        try:
            records = _records_adapter.validate_python(body[self.records_key])
        except ValidationError as exc:
            msg = f"{self.records_key!r} is not a list of objects: {exc.errors()[0]['msg']}"
            raise ParseError(msg) from exc

        tags: dict[str, Any] = {}
        for name in (*(self.echo_fields or ()), *self.metadata_fields):
            value = body.get(name)
            # Only scalars make sense as table columns
            if value is not None and not isinstance(value, (dict, list)):
                tags[name] = value
        return Extraction(records=records, tags=tags)


def normalize_records(
    records: Sequence[Mapping[str, Any]],
    point: ParameterPoint,
    tags: Mapping[str, Any] | None = None,
    drop_fields: Iterable[str] = (),
    rename_fields: Mapping[str, str] | None = None,
) -> list[Record]:
    """
    Apply drop/rename and tag each record with where it came from.

    Tag precedence, lowest to highest: request point values, then values the
    response echoed back, then fields the record itself already carries.
    Inputs are not mutated.
    """
    drop = set(drop_fields)
    renames = dict(rename_fields or {})
    point_tags: dict[str, Any] = {**point.as_dict(), **(tags or {})}

    out: list[Record] = []
    for record in records:
        row: Record = {}
        for key, value in record.items():
            if key in drop:
                continue
            row[renames.get(key, key)] = value
        for key, value in point_tags.items():
            row.setdefault(key, value)
        out.append(row)
    return out


def build_table(
    results: Sequence[FetchResult],
) -> tuple[HarvestTable, list[SchemaMismatch]]:
    """
    Concatenate successful results into one table.

    Columns are the union of all record fields in first-seen order; rows keep
    grid order and intra-point order and carry ``None`` for absent fields.
    A point whose records add or lack fields relative to the columns seen so
    far is reported as a ``SchemaMismatch``.
    """
    columns: dict[str, None] = {}
    mismatches: list[SchemaMismatch] = []

    for result in results:
        if result.error is not None or not result.records:
            continue
        point_fields: dict[str, None] = {}
        for record in result.records:
            point_fields.update(dict.fromkeys(record))
        if columns:
            missing = frozenset(columns) - frozenset(point_fields)
            extra = frozenset(point_fields) - frozenset(columns)
            if missing or extra:
                mismatch = SchemaMismatch(result.point, missing, extra)
                logger.debug("Schema mismatch at %s", mismatch)
                mismatches.append(mismatch)
        columns.update(point_fields)

    names = list(columns)
    rows = [
        {name: record.get(name) for name in names}
        for result in results
        if result.error is None
        for record in result.records
    ]
    return HarvestTable(columns=names, rows=rows), mismatches
