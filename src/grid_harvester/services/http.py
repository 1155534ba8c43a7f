"""
HTTP transport for grid harvests.

One ``requests.Session`` per harvest, fronted by ``TimeoutHTTPAdapter``:

- resource GETs are retried by urllib3 on 429 and 502/503/504 with
  exponential backoff; a plain 500 comes straight back and becomes a
  failed point
- every request gets a timeout, so a hung endpoint fails its point
  instead of stalling the pool
- the connection pool is sized to the harvest concurrency

Token exchanges are POSTs. urllib3 only retries those when the connection
itself could not be made.

Usage::

    from grid_harvester.services.http import create_session

    s = create_session(timeout=10, pool_size=8)
    resp = s.get("https://api.example.com/v1/stats", params={"week": 1})
"""

from __future__ import annotations

from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

RETRY_STATUSES = (429, 502, 503, 504)

#: Retry strategy for resource requests.
DEFAULT_RETRY = Retry(
    total=4,
    backoff_factor=2,  # 0s, 2s, 4s, 8s between retries
    status_forcelist=list(RETRY_STATUSES),
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,  # the harvester inspects the final status itself
)

DEFAULT_TIMEOUT = 30  # seconds

USER_AGENT = "grid-harvester/0.1"


class TimeoutHTTPAdapter(HTTPAdapter):
    """``HTTPAdapter`` that fills in ``timeout`` when the caller left it unset."""

    def __init__(self, *args: Any, timeout: float = DEFAULT_TIMEOUT, **kwargs: Any) -> None:
        self.timeout = timeout
        super().__init__(*args, **kwargs)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        # Session.request forwards timeout=None when omitted
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self.timeout
        return super().send(request, **kwargs)


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    pool_size: int = 10,
) -> requests.Session:
    """
    Build a harvest session.

    Args:
        retry: Custom retry strategy (defaults to ``DEFAULT_RETRY``).
        timeout: Timeout for requests that do not pass one.
        pool_size: Connections kept per host; size it to the harvest concurrency.
    """
    adapter = TimeoutHTTPAdapter(
        max_retries=retry or DEFAULT_RETRY,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        timeout=timeout,
    )
    s = requests.Session()
    for prefix in ("https://", "http://"):
        s.mount(prefix, adapter)
    s.headers["User-Agent"] = USER_AGENT
    return s


#: Shared session for token requests made without an explicit session.
session: requests.Session = create_session()
