"""
Reloadly Token Cache
Holds one bearer token per API audience and refreshes it through the
client-credentials exchange when it is about to expire.

Each audience moves through three states:
- FRESH: token present and not within the expiry buffer
- STALE: no token yet, or token within the buffer / expired
- REFRESHING: one exchange call in flight; other callers wait on it
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

import requests

from config.environment import (
    DEFAULT_TOKEN_EXPIRES_IN,
    RELOADLY_AUTH_URL,
    RELOADLY_CLIENT_ID,
    RELOADLY_CLIENT_SECRET,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    VENDOR_HTTP_TIMEOUT,
)
from utils.vas_errors import AuthenticationFailure

logger = logging.getLogger(__name__)

FRESH = 'FRESH'
STALE = 'STALE'
REFRESHING = 'REFRESHING'


def _now_ms() -> int:
    return int(time.time() * 1000)


class _RefreshFlight:
    """A single in-flight exchange shared by every caller that found the token stale."""

    def __init__(self):
        self.done = threading.Event()
        self.token = None
        self.error = None


class VendorCredential:
    """Token and expiry for one audience, plus the transition functions."""

    def __init__(self, audience: str):
        self.audience = audience
        self.token = None
        self.expires_at_ms = 0
        self.flight = None

    def state(self, now_ms: int, buffer_ms: int) -> str:
        if self.flight is not None:
            return REFRESHING
        if self.token and now_ms < self.expires_at_ms - buffer_ms:
            return FRESH
        return STALE

    def begin_refresh(self) -> _RefreshFlight:
        self.flight = _RefreshFlight()
        return self.flight

    def complete_refresh(self, token: str, expires_at_ms: int):
        flight = self.flight
        self.token = token
        self.expires_at_ms = expires_at_ms
        self.flight = None
        flight.token = token
        flight.done.set()

    def fail_refresh(self, error: Exception):
        # Cached token (if any) stays as it was
        flight = self.flight
        self.flight = None
        flight.error = error
        flight.done.set()


class ReloadlyTokenCache:
    """
    Thread-safe per-audience token cache with single-flight refresh.

    Args:
        client_id / client_secret: Reloadly API credentials
        auth_url: OAuth token endpoint
        buffer_seconds: refresh this long before the token actually expires
        timeout: seconds for the exchange call
        session: optional requests.Session (tests inject a mock)
        clock: callable returning epoch milliseconds
    """

    def __init__(
        self,
        client_id: str = RELOADLY_CLIENT_ID,
        client_secret: str = RELOADLY_CLIENT_SECRET,
        auth_url: str = RELOADLY_AUTH_URL,
        buffer_seconds: int = TOKEN_EXPIRY_BUFFER_SECONDS,
        default_expires_in: int = DEFAULT_TOKEN_EXPIRES_IN,
        timeout: float = VENDOR_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.auth_url = auth_url
        self.buffer_ms = buffer_seconds * 1000
        self.default_expires_in = default_expires_in
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock
        self._credentials: Dict[str, VendorCredential] = {}
        self._lock = threading.Lock()

    def get_token(self, audience: str) -> str:
        """Return a usable token for `audience`, refreshing it at most once across callers."""
        with self._lock:
            credential = self._credentials.get(audience)
            if credential is None:
                credential = VendorCredential(audience)
                self._credentials[audience] = credential

            state = credential.state(self.clock(), self.buffer_ms)
            if state == FRESH:
                return credential.token

            if state == REFRESHING:
                flight = credential.flight
                owner = False
            else:
                flight = credential.begin_refresh()
                owner = True

        if not owner:
            return self._await_flight(audience, flight)

        try:
            token, expires_in = self._exchange(audience)
        except AuthenticationFailure as e:
            with self._lock:
                credential.fail_refresh(e)
            raise
        except Exception as e:
            logger.error(f"Unexpected error refreshing Reloadly token for {audience}: {str(e)}")
            error = AuthenticationFailure('Could not authenticate with Reloadly.', detail=str(e))
            with self._lock:
                credential.fail_refresh(error)
            raise error from e

        with self._lock:
            credential.complete_refresh(token, self.clock() + expires_in * 1000)

        logger.info(f"New Reloadly token for {audience}. Expires in {expires_in / 3600:.2f} hours.")
        return token

    def get_token_with_fallback(self, audience: str, fallback_audience: str) -> str:
        """Token for a secondary audience, falling back to the primary audience on failure."""
        try:
            return self.get_token(audience)
        except AuthenticationFailure as e:
            logger.warning(f"Token for {audience} unavailable ({e}); trying {fallback_audience}")
            return self.get_token(fallback_audience)

    def state_of(self, audience: str) -> str:
        with self._lock:
            credential = self._credentials.get(audience)
            if credential is None:
                return STALE
            return credential.state(self.clock(), self.buffer_ms)

    def snapshot(self) -> Dict[str, str]:
        """Audience -> state, for health reporting."""
        with self._lock:
            now = self.clock()
            return {
                audience: credential.state(now, self.buffer_ms)
                for audience, credential in self._credentials.items()
            }

    def _await_flight(self, audience: str, flight: _RefreshFlight) -> str:
        # The owner's exchange is itself bounded by self.timeout
        if not flight.done.wait(self.timeout * 2):
            raise AuthenticationFailure(f'Timed out waiting for Reloadly token refresh for {audience}')
        if flight.error is not None:
            raise flight.error
        return flight.token

    def _exchange(self, audience: str):
        """Client-credentials exchange. Any failure is an AuthenticationFailure."""
        logger.info(f"Fetching new Reloadly access token for {audience}...")
        payload = {
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'grant_type': 'client_credentials',
            'audience': audience,
        }

        try:
            response = self.session.post(
                self.auth_url,
                json=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Reloadly auth request failed for {audience}: {str(e)}")
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail=str(e),
            )

        if response.status_code != 200:
            logger.error(f"Reloadly auth HTTP error: {response.status_code} - {response.text[:300]}")
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail=f'{response.status_code} - {response.text[:300]}',
            )

        try:
            data = response.json()
        except ValueError:
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail='Invalid JSON in token response',
            )

        if not isinstance(data, dict):
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail=f'Unexpected token response: {response.text[:200]}',
            )

        token = data.get('access_token')
        if not token or not isinstance(token, str):
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail='Token response carried no access_token',
            )

        expires_in = data.get('expires_in') or self.default_expires_in
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail=f'Invalid expires_in: {expires_in!r}',
            )
        if expires_in <= 0:
            raise AuthenticationFailure(
                'Could not authenticate with Reloadly.',
                detail=f'Invalid expires_in: {expires_in!r}',
            )

        logger.info(f"Reloadly access token obtained: {token[:10]}...")
        return token, expires_in
