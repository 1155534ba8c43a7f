"""Parameter axes and Cartesian grid expansion.

Everything here is pure: no network, no clock. The grid order is
lexicographic over the axes as declared, so the first axis varies slowest::

    >>> axes = [ParameterAxis("season", (2021, 2022)), ParameterAxis("week", (1, 2))]
    >>> [str(p) for p in expand_grid(axes)]
    ['season=2021, week=1', 'season=2021, week=2', 'season=2022, week=1', 'season=2022, week=2']
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Union

Scalar = Union[str, int, float, bool]


@dataclass(frozen=True)
class ParameterAxis:
    """A named, ordered sequence of scalar request parameter values."""

    name: str
    values: tuple[Scalar, ...]

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Axis name must not be empty"
            raise ValueError(msg)
        # Accept lists/ranges from callers but store an immutable tuple.
        # A bare string is one value, not a sequence of characters.
        values = (self.values,) if isinstance(self.values, str) else tuple(self.values)
        object.__setattr__(self, "values", values)
        if not self.values:
            msg = f"Axis {self.name!r} has no values"
            raise ValueError(msg)

    def __len__(self) -> int:
        return len(self.values)


class ParameterPoint(Mapping[str, Scalar]):
    """One grid cell: axis name -> value, in axis declaration order."""

    __slots__ = ("_items",)

    def __init__(self, items: Sequence[tuple[str, Scalar]] | Mapping[str, Scalar]) -> None:
        pairs = tuple(items.items()) if isinstance(items, Mapping) else tuple(items)
        self._items: tuple[tuple[str, Scalar], ...] = pairs

    def __getitem__(self, key: str) -> Scalar:
        for name, value in self._items:
            if name == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterPoint):
            return self._items == other._items
        if isinstance(other, Mapping):
            return dict(self._items) == dict(other.items())
        return NotImplemented

    def __repr__(self) -> str:
        return f"ParameterPoint({self.as_dict()!r})"

    def __str__(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in self._items)

    def as_dict(self) -> dict[str, Scalar]:
        return dict(self._items)


def _check_unique(axes: Sequence[ParameterAxis]) -> None:
    seen: set[str] = set()
    for axis in axes:
        if axis.name in seen:
            msg = f"Duplicate axis name: {axis.name!r}"
            raise ValueError(msg)
        seen.add(axis.name)


def grid_size(axes: Sequence[ParameterAxis]) -> int:
    """Number of points the grid expands to (product of axis lengths)."""
    _check_unique(axes)
    if not axes:
        return 0
    return math.prod(len(axis) for axis in axes)


def iter_grid(axes: Sequence[ParameterAxis]) -> Iterator[ParameterPoint]:
    """Lazily yield grid points, outer-to-inner as the axes are declared."""
    _check_unique(axes)
    if not axes:
        return
    names = [axis.name for axis in axes]
    for combo in itertools.product(*(axis.values for axis in axes)):
        yield ParameterPoint(tuple(zip(names, combo, strict=True)))


def expand_grid(axes: Sequence[ParameterAxis]) -> list[ParameterPoint]:
    """Materialize the full Cartesian product of ``axes``.

    An empty axis list yields an empty grid (there is nothing to request).
    """
    return list(iter_grid(axes))


def _coerce(raw: str) -> Scalar:
    raw = raw.strip()
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def parse_axis(text: str) -> ParameterAxis:
    """
    Parse a command-line axis definition.

    Supported forms::

        week=1..18            inclusive integer range
        season=2021,2022      comma-separated list (ints/floats coerced)
        team=SEA              single value

    Raises:
        ValueError: Missing ``=``, empty name, or a malformed range.
    """
    name, sep, spec = text.partition("=")
    name = name.strip()
    if not sep or not name:
        msg = f"Axis must look like name=values, got {text!r}"
        raise ValueError(msg)

    if ".." in spec:
        start_s, _, end_s = spec.partition("..")
        try:
            start, end = int(start_s), int(end_s)
        except ValueError:
            msg = f"Range bounds must be integers: {spec!r}"
            raise ValueError(msg) from None
        if end < start:
            msg = f"Range end before start: {spec!r}"
            raise ValueError(msg)
        return ParameterAxis(name, tuple(range(start, end + 1)))

    values = tuple(_coerce(v) for v in spec.split(",") if v.strip())
    return ParameterAxis(name, values)
