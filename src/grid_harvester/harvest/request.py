"""Per-point request construction.

An ``EndpointTemplate`` turns a ``ParameterPoint`` into one HTTP request:
``{axis}`` placeholders in the URL, query values and JSON body strings are
filled from the point, the bearer token and static headers are attached.
"""

from __future__ import annotations

import string
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import quote

if TYPE_CHECKING:
    import requests

    from grid_harvester.grid import ParameterPoint
    from grid_harvester.schemas import HarvestJob, Token

FetchOne = Callable[["ParameterPoint", "Token | None"], "requests.Response"]

_formatter = string.Formatter()


def placeholders(template: str) -> set[str]:
    """Field names referenced by a ``str.format`` template."""
    return {name for _, name, _, _ in _formatter.parse(template) if name}


def _single_placeholder(template: str) -> str | None:
    """Return the field name if ``template`` is exactly ``{name}``."""
    parts = list(_formatter.parse(template))
    if len(parts) == 1:
        literal, name, spec, conv = parts[0]
        if not literal and name and not spec and not conv:
            return name
    return None


def _fill(value: Any, point: ParameterPoint) -> Any:
    """Substitute point values into strings nested anywhere in ``value``."""
    if isinstance(value, str):
        whole = _single_placeholder(value)
        if whole is not None:
            # Keep the native type (int week stays int in JSON bodies)
            return point[whole]
        return value.format_map(point.as_dict())
    if isinstance(value, Mapping):
        return {k: _fill(v, point) for k, v in value.items()}
    if isinstance(value, list):
        return [_fill(v, point) for v in value]
    return value


def _collect(value: Any) -> set[str]:
    if isinstance(value, str):
        return placeholders(value)
    if isinstance(value, Mapping):
        return set().union(*(_collect(v) for v in value.values())) if value else set()
    if isinstance(value, list):
        return set().union(*(_collect(v) for v in value)) if value else set()
    return set()


@dataclass(frozen=True)
class EndpointTemplate:
    """How to request one grid point from a resource endpoint."""

    url: str
    method: Literal["GET", "POST"] = "GET"
    query: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    json_body: Mapping[str, Any] | None = None
    auth: Literal["bearer", "none"] = "bearer"
    timeout: float | None = None

    @classmethod
    def from_job(cls, job: HarvestJob, timeout: float | None = None) -> EndpointTemplate:
        return cls(
            url=job.url,
            method=job.method,
            query=dict(job.query),
            headers=dict(job.headers),
            json_body=job.json_body,
            auth=job.auth,
            timeout=timeout,
        )

    def placeholders(self) -> set[str]:
        names = placeholders(self.url) | _collect(dict(self.query))
        if self.json_body is not None:
            names |= _collect(dict(self.json_body))
        return names

    def validate(self, axis_names: Iterable[str]) -> None:
        """Fail before any network call if a placeholder has no axis.

        Raises:
            ValueError: Unknown placeholder(s).
        """
        unknown = self.placeholders() - set(axis_names)
        if unknown:
            msg = f"Template references unknown axes: {sorted(unknown)}"
            raise ValueError(msg)

    def build_url(self, point: ParameterPoint) -> str:
        quoted = {k: quote(str(v), safe="") for k, v in point.items()}
        return self.url.format_map(quoted)

    def build_params(self, point: ParameterPoint) -> dict[str, Any]:
        return {k: _fill(v, point) for k, v in self.query.items()}

    def build_headers(self, token: Token | None) -> dict[str, str]:
        headers = dict(self.headers)
        if self.auth == "bearer" and token is not None:
            headers["Authorization"] = f"Bearer {token.access_token}"
        return headers

    def fetcher(self, session: requests.Session) -> FetchOne:
        """Return a ``fetch_one(point, token)`` bound to ``session``."""

        def fetch_one(point: ParameterPoint, token: Token | None) -> requests.Response:
            kwargs: dict[str, Any] = {
                "params": self.build_params(point) or None,
                "headers": self.build_headers(token),
            }
            if self.json_body is not None:
                kwargs["json"] = _fill(dict(self.json_body), point)
            if self.timeout is not None:
                kwargs["timeout"] = self.timeout
            return session.request(self.method, self.build_url(point), **kwargs)

        return fetch_one
