"""Shared fixtures for harvester tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import Mock

import pytest
from pydantic import SecretStr

from grid_harvester.schemas import Credentials

_MISSING = object()


def fake_response(status: int = 200, body: Any = _MISSING, url: str = "https://api.test/x") -> Mock:
    """A ``requests.Response`` stand-in with ``status_code``, ``url`` and ``json()``."""
    resp = Mock()
    resp.status_code = status
    resp.url = url
    resp.text = "" if body is _MISSING else str(body)
    if body is _MISSING:
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    return fake_response


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(client_id="client-abc", client_secret=SecretStr("s3cret"))


@pytest.fixture
def token_session() -> Mock:
    """Session whose ``post`` answers like a healthy token endpoint."""
    session = Mock()
    session.post.return_value = fake_response(
        200, {"access_token": "tok-1", "token_type": "Bearer", "expires_in": 3600}
    )
    return session
