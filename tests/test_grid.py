"""Tests for parameter axes and grid expansion."""

from __future__ import annotations

import pytest

from grid_harvester.grid import (
    ParameterAxis,
    ParameterPoint,
    expand_grid,
    grid_size,
    iter_grid,
    parse_axis,
)


class TestParameterAxis:
    """Test axis validation."""

    def test_values_stored_as_tuple(self) -> None:
        axis = ParameterAxis("week", [1, 2, 3])  # type: ignore[arg-type]
        assert axis.values == (1, 2, 3)
        assert len(axis) == 3

    def test_accepts_range(self) -> None:
        axis = ParameterAxis("week", range(1, 19))  # type: ignore[arg-type]
        assert len(axis) == 18

    def test_bare_string_is_single_value(self) -> None:
        axis = ParameterAxis("team", "SEA")  # type: ignore[arg-type]
        assert axis.values == ("SEA",)
        assert grid_size([axis]) == 1

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="name"):
            ParameterAxis("", (1,))

    def test_empty_values_rejected(self) -> None:
        with pytest.raises(ValueError, match="no values"):
            ParameterAxis("week", ())


class TestGridExpansion:
    """Test Cartesian product size and order."""

    def test_weeks_by_seasons_size(self) -> None:
        axes = [ParameterAxis("week", range(1, 19)), ParameterAxis("season", (2021, 2022))]  # type: ignore[arg-type]
        assert grid_size(axes) == 36
        assert len(expand_grid(axes)) == 36

    def test_size_is_product_of_lengths(self) -> None:
        axes = [
            ParameterAxis("a", (1, 2, 3)),
            ParameterAxis("b", ("x", "y")),
            ParameterAxis("c", (True, False, 5, 7)),
        ]
        assert grid_size(axes) == 3 * 2 * 4
        assert len(expand_grid(axes)) == 24

    def test_outer_axis_varies_slowest(self) -> None:
        axes = [ParameterAxis("season", (2021, 2022)), ParameterAxis("week", (1, 2))]
        points = [p.as_dict() for p in expand_grid(axes)]
        assert points == [
            {"season": 2021, "week": 1},
            {"season": 2021, "week": 2},
            {"season": 2022, "week": 1},
            {"season": 2022, "week": 2},
        ]

    def test_order_is_reproducible(self) -> None:
        axes = [ParameterAxis("week", range(1, 19)), ParameterAxis("season", (2021, 2022))]  # type: ignore[arg-type]
        assert expand_grid(axes) == expand_grid(axes)

    def test_point_keys_follow_axis_order(self) -> None:
        axes = [ParameterAxis("week", (1,)), ParameterAxis("season", (2021,))]
        (point,) = expand_grid(axes)
        assert list(point) == ["week", "season"]

    def test_empty_axis_list(self) -> None:
        assert expand_grid([]) == []
        assert grid_size([]) == 0

    def test_iter_grid_is_lazy(self) -> None:
        axes = [ParameterAxis("a", range(1000)), ParameterAxis("b", range(1000))]  # type: ignore[arg-type]
        first = next(iter_grid(axes))
        assert first.as_dict() == {"a": 0, "b": 0}

    def test_duplicate_axis_names_rejected(self) -> None:
        axes = [ParameterAxis("week", (1,)), ParameterAxis("week", (2,))]
        with pytest.raises(ValueError, match="Duplicate"):
            expand_grid(axes)


class TestParameterPoint:
    """Test the immutable point mapping."""

    def test_mapping_access(self) -> None:
        point = ParameterPoint([("season", 2021), ("week", 3)])
        assert point["week"] == 3
        assert len(point) == 2
        assert dict(point) == {"season": 2021, "week": 3}

    def test_missing_key(self) -> None:
        point = ParameterPoint({"week": 3})
        with pytest.raises(KeyError):
            point["season"]

    def test_hashable_and_equal(self) -> None:
        a = ParameterPoint({"season": 2021, "week": 3})
        b = ParameterPoint([("season", 2021), ("week", 3)])
        assert a == b
        assert hash(a) == hash(b)
        assert {a: 1}[b] == 1

    def test_equal_to_plain_dict(self) -> None:
        assert ParameterPoint({"week": 1}) == {"week": 1}

    def test_str(self) -> None:
        assert str(ParameterPoint({"season": 2021, "week": 3})) == "season=2021, week=3"


class TestParseAxis:
    """Test command-line axis parsing."""

    def test_range(self) -> None:
        axis = parse_axis("week=1..18")
        assert axis.name == "week"
        assert axis.values == tuple(range(1, 19))

    def test_list_coerces_numbers(self) -> None:
        axis = parse_axis("season=2021,2022")
        assert axis.values == (2021, 2022)

    def test_strings_and_floats(self) -> None:
        axis = parse_axis("team=SEA, 1.5")
        assert axis.values == ("SEA", 1.5)

    def test_missing_equals(self) -> None:
        with pytest.raises(ValueError, match="name=values"):
            parse_axis("week")

    def test_bad_range(self) -> None:
        with pytest.raises(ValueError, match="integers"):
            parse_axis("week=a..b")

    def test_reversed_range(self) -> None:
        with pytest.raises(ValueError, match="before start"):
            parse_axis("week=5..1")

    def test_empty_values(self) -> None:
        with pytest.raises(ValueError, match="no values"):
            parse_axis("week=")
