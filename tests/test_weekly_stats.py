"""Tests for the weekly player-stats datasource."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

from grid_harvester.config import Settings
from grid_harvester.datasources.weekly_stats import WEEKLY_STATS_API, WEEKS, weekly_stats_job
from grid_harvester.datasources.weekly_stats import client
from grid_harvester.grid import grid_size
from grid_harvester.harvest import run_job
from grid_harvester.services.oauth import TokenManager

if TYPE_CHECKING:
    from collections.abc import Callable

    from grid_harvester.schemas import Credentials


class TestWeeklyStatsJob:
    """Test the job factory."""

    def test_full_regular_season_grid(self) -> None:
        job = weekly_stats_job([2021, 2022])
        axes = job.parameter_axes()
        assert [a.name for a in axes] == ["season", "week"]
        assert grid_size(axes) == 36
        assert list(axes[1].values) == WEEKS

    def test_defaults(self) -> None:
        job = weekly_stats_job([2021])
        assert job.url == WEEKLY_STATS_API
        assert job.records_key == "stats"
        assert job.drop_fields == ["player"]
        assert job.query == {"season": "{season}", "week": "{week}"}
        assert job.auth == "bearer"

    def test_browser_headers(self) -> None:
        headers = weekly_stats_job([2021]).headers
        for name in ("Host", "Referer", "User-Agent", "Cache-Control", "Content-Type"):
            assert name in headers

    def test_headers_are_copied(self) -> None:
        job = weekly_stats_job([2021])
        job.headers["Host"] = "changed"
        assert client.STATIC_HEADERS["Host"] != "changed"

    def test_overrides(self) -> None:
        job = weekly_stats_job([2021], [1, 2], base_url="https://staging.test", name="s", concurrency=4)
        assert job.url == "https://staging.test"
        assert job.name == "s"
        assert job.concurrency == 4
        assert grid_size(job.parameter_axes()) == 2


class TestWeeklyStatsHarvest:
    """Run the job against a mocked API."""

    def test_two_weeks_one_season(
        self,
        credentials: Credentials,
        token_session: Mock,
        make_response: Callable[..., Mock],
    ) -> None:
        def serve(method: str, url: str, params: dict[str, Any], **_kwargs: Any) -> Mock:
            return make_response(
                200,
                {
                    "stats": [{"player": "X", "yards": 10}],
                    "season": params["season"],
                    "week": params["week"],
                },
            )

        session = Mock()
        session.request.side_effect = serve
        tokens = TokenManager(credentials, "https://auth.test/token", session=token_session)

        report = run_job(
            weekly_stats_job([2021], [1, 2]),
            tokens=tokens,
            session=session,
            settings=Settings(_env_file=None),
        )

        assert report.table.columns == ["yards", "season", "week"]
        assert report.table.rows == [
            {"yards": 10, "season": 2021, "week": 1},
            {"yards": 10, "season": 2021, "week": 2},
        ]
        headers = session.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok-1"
        assert headers["Referer"] == client.STATIC_HEADERS["Referer"]
