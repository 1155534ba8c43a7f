"""Tests for per-point request construction."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from grid_harvester.grid import ParameterPoint
from grid_harvester.harvest.request import EndpointTemplate, placeholders
from grid_harvester.schemas import AxisSpec, HarvestJob, Token

POINT = ParameterPoint({"season": 2021, "week": 3})
TOKEN = Token(access_token="tok-1")


class TestPlaceholders:
    """Test template field discovery."""

    def test_finds_fields(self) -> None:
        assert placeholders("https://api/{season}/week/{week}") == {"season", "week"}

    def test_no_fields(self) -> None:
        assert placeholders("https://api/stats") == set()

    def test_collects_from_query_and_body(self) -> None:
        endpoint = EndpointTemplate(
            url="https://api/{season}",
            query={"w": "{week}", "fixed": 1},
            json_body={"filter": {"team": "{team}"}, "ids": ["{week}"]},
        )
        assert endpoint.placeholders() == {"season", "week", "team"}


class TestValidate:
    """Test template validation against axis names."""

    def test_known_axes_pass(self) -> None:
        EndpointTemplate(url="https://api/{season}", query={"w": "{week}"}).validate(
            ["season", "week"]
        )

    def test_unknown_axis_rejected(self) -> None:
        endpoint = EndpointTemplate(url="https://api/{year}")
        with pytest.raises(ValueError, match="year"):
            endpoint.validate(["season", "week"])


class TestBuild:
    """Test URL, params and header construction."""

    def test_url_substitution(self) -> None:
        endpoint = EndpointTemplate(url="https://api/stats/{season}/week/{week}")
        assert endpoint.build_url(POINT) == "https://api/stats/2021/week/3"

    def test_url_values_are_quoted(self) -> None:
        endpoint = EndpointTemplate(url="https://api/teams/{team}")
        point = ParameterPoint({"team": "New York/NY"})
        assert endpoint.build_url(point) == "https://api/teams/New%20York%2FNY"

    def test_params_keep_native_types(self) -> None:
        endpoint = EndpointTemplate(
            url="https://api/stats",
            query={"season": "{season}", "label": "wk-{week}", "limit": 100},
        )
        assert endpoint.build_params(POINT) == {"season": 2021, "label": "wk-3", "limit": 100}

    def test_bearer_header(self) -> None:
        endpoint = EndpointTemplate(url="https://api", headers={"Cache-Control": "no-cache"})
        headers = endpoint.build_headers(TOKEN)
        assert headers == {"Cache-Control": "no-cache", "Authorization": "Bearer tok-1"}

    def test_no_auth_header_without_token(self) -> None:
        endpoint = EndpointTemplate(url="https://api")
        assert "Authorization" not in endpoint.build_headers(None)

    def test_auth_none_skips_token(self) -> None:
        endpoint = EndpointTemplate(url="https://api", auth="none")
        assert "Authorization" not in endpoint.build_headers(TOKEN)

    def test_static_headers_not_mutated(self) -> None:
        static = {"Referer": "https://site"}
        endpoint = EndpointTemplate(url="https://api", headers=static)
        endpoint.build_headers(TOKEN)
        assert static == {"Referer": "https://site"}


class TestFetcher:
    """Test the bound fetch_one callable."""

    def test_get_request(self) -> None:
        session = Mock()
        endpoint = EndpointTemplate(
            url="https://api/stats",
            query={"season": "{season}", "week": "{week}"},
            headers={"Referer": "https://site"},
        )
        fetch_one = endpoint.fetcher(session)

        result = fetch_one(POINT, TOKEN)

        assert result is session.request.return_value
        session.request.assert_called_once_with(
            "GET",
            "https://api/stats",
            params={"season": 2021, "week": 3},
            headers={"Referer": "https://site", "Authorization": "Bearer tok-1"},
        )

    def test_post_with_json_body_and_timeout(self) -> None:
        session = Mock()
        endpoint = EndpointTemplate(
            url="https://api/search",
            method="POST",
            json_body={"season": "{season}", "weeks": ["{week}"]},
            timeout=5,
        )
        endpoint.fetcher(session)(POINT, None)

        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api/search")
        assert kwargs["json"] == {"season": 2021, "weeks": [3]}
        assert kwargs["params"] is None
        assert kwargs["timeout"] == 5

    def test_from_job(self) -> None:
        job = HarvestJob(
            name="t",
            url="https://api/{season}",
            query={"week": "{week}"},
            headers={"Host": "api"},
            auth="none",
            axes=[AxisSpec(name="season", values=[2021]), AxisSpec(name="week", values=[1])],
            records_key="stats",
        )
        endpoint = EndpointTemplate.from_job(job, timeout=12)
        assert endpoint.url == "https://api/{season}"
        assert endpoint.query == {"week": "{week}"}
        assert endpoint.headers == {"Host": "api"}
        assert endpoint.auth == "none"
        assert endpoint.timeout == 12
