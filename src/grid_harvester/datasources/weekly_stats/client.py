"""Weekly player-stats API constants.

The endpoint serves one week of one season per request and echoes the
``season``/``week`` it actually served next to the ``stats`` list.
"""

WEEKLY_STATS_API = "https://api.sportsdata.example/v1/stats/weekly"

# Regular season weeks
WEEKS = list(range(1, 19))

RECORDS_KEY = "stats"

# Player identity is not needed for team-level aggregation
DROP_FIELDS = ["player"]

# The API rejects requests that do not look like they come from its web app
STATIC_HEADERS = {
    "Host": "api.sportsdata.example",
    "Referer": "https://www.sportsdata.example/stats",
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko)",
    "Cache-Control": "no-cache",
    "Content-Type": "application/json",
}
