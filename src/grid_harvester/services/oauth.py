"""OAuth2 client-credentials token provider.

``acquire_token`` performs exactly one exchange and returns a ``Token``; it
does not cache. ``TokenManager`` owns a token for the length of a harvest,
refreshing it before expiry so long harvests never send a stale token.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime

import requests
from pydantic import ValidationError
from requests.auth import HTTPBasicAuth

from grid_harvester.errors import AuthError
from grid_harvester.schemas import Credentials, Token
from grid_harvester.services.http import session as default_session

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def acquire_token(
    credentials: Credentials,
    scope: str | None = None,
    *,
    token_url: str,
    session: requests.Session | None = None,
    now: datetime | None = None,
) -> Token:
    """
    Exchange client credentials for a bearer token.

    Sends ``grant_type=client_credentials`` (and ``scope`` when given) as a
    form body, authenticated with HTTP Basic.

    Args:
        credentials: Client id/secret pair.
        scope: Optional OAuth scope string.
        token_url: Token endpoint.
        session: HTTP session (defaults to the shared retrying session).
        now: Issue time used to compute ``expires_at``.

    Raises:
        AuthError: Network failure, non-2xx status, non-JSON body, or no
            ``access_token`` in the response.
    """
    if not credentials.client_id or not credentials.client_secret.get_secret_value():
        msg = "Client id and secret must be non-empty"
        raise AuthError(msg)

    s = session or default_session
    data = {"grant_type": "client_credentials"}
    if scope:
        data["scope"] = scope

    try:
        resp = s.post(
            token_url,
            data=data,
            auth=HTTPBasicAuth(credentials.client_id, credentials.client_secret.get_secret_value()),
            headers={"Accept": "application/json"},
        )
    except requests.RequestException as exc:
        raise AuthError(f"Token request to {token_url} failed: {exc}") from exc

    if not 200 <= resp.status_code < 300:
        detail = (resp.text or "").strip()[:200]
        raise AuthError(f"Token request failed (HTTP {resp.status_code}): {detail}")

    try:
        payload = resp.json()
    except ValueError as exc:
        raise AuthError("Token endpoint returned a non-JSON body") from exc

    if not isinstance(payload, dict) or not payload.get("access_token"):
        msg = "Token endpoint response has no access_token"
        raise AuthError(msg)

    try:
        token = Token.from_response(payload, now=now)
    except ValidationError as exc:
        raise AuthError(f"Malformed token response: {exc.errors()[0]['msg']}") from exc

    logger.info("Acquired token from %s (expires %s)", token_url, token.expires_at or "never")
    return token


class TokenManager:
    """Holds the current bearer token and refreshes it on demand.

    ``current()`` serializes refreshes behind a lock: while one thread is
    exchanging credentials, other workers asking for a token wait instead of
    starting new fetches with the old one.
    """

    def __init__(
        self,
        credentials: Credentials,
        token_url: str,
        scope: str | None = None,
        *,
        refresh_margin: float = 60.0,
        session: requests.Session | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.credentials = credentials
        self.token_url = token_url
        self.scope = scope
        self.refresh_margin = refresh_margin
        self.session = session
        self._clock = clock or _utcnow
        self._token: Token | None = None
        self._lock = threading.Lock()
        self.refresh_count = 0

    def current(self) -> Token:
        """Return a token valid for at least ``refresh_margin`` seconds.

        Raises:
            AuthError: The (re)acquisition failed.
        """
        with self._lock:
            token = self._token
            if token is None or token.is_expired(self.refresh_margin, now=self._clock()):
                if token is not None:
                    logger.info("Token expiring, refreshing")
                token = acquire_token(
                    self.credentials,
                    self.scope,
                    token_url=self.token_url,
                    session=self.session,
                    now=self._clock(),
                )
                self._token = token
                self.refresh_count += 1
            return token

    def invalidate(self, token: Token) -> None:
        """Forget ``token`` if it is still the cached one (e.g. after a 401)."""
        with self._lock:
            if self._token is token:
                self._token = None

    def authorization_header(self) -> dict[str, str]:
        token = self.current()
        return {"Authorization": f"Bearer {token.access_token}"}
