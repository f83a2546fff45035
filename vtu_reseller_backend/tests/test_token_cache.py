"""
Unit Tests for the Reloadly Token Cache
Covers expiry buffer, single-flight refresh, failure handling and audience fallback
"""

import threading
import unittest
from unittest.mock import Mock

import requests

from vas_doubles import ManualClock
from utils.token_cache import FRESH, REFRESHING, STALE, ReloadlyTokenCache
from utils.vas_errors import AuthenticationFailure

TOPUPS = 'https://topups.reloadly.com'
UTILITIES = 'https://utilities.reloadly.com'


def token_response(token, expires_in=3600, status_code=200):
    response = Mock()
    response.status_code = status_code
    body = {'access_token': token, 'token_type': 'Bearer'}
    if expires_in is not None:
        body['expires_in'] = expires_in
    response.json.return_value = body
    response.text = str(body)
    return response


def error_response(status_code, text='{"message": "Invalid client credentials"}'):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {'message': 'Invalid client credentials'}
    response.text = text
    return response


class TestTokenCacheExpiry(unittest.TestCase):
    """Fresh/Stale transitions driven by the clock"""

    def setUp(self):
        self.clock = ManualClock()
        self.session = Mock()
        self.session.post.return_value = token_response('token-1', expires_in=3600)
        self.cache = ReloadlyTokenCache(
            client_id='id',
            client_secret='secret',
            auth_url='https://auth.reloadly.com/oauth/token',
            buffer_seconds=300,
            session=self.session,
            clock=self.clock,
        )

    def test_first_call_exchanges_credentials(self):
        self.assertEqual(self.cache.state_of(TOPUPS), STALE)

        token = self.cache.get_token(TOPUPS)

        self.assertEqual(token, 'token-1')
        self.assertEqual(self.session.post.call_count, 1)
        payload = self.session.post.call_args.kwargs['json']
        self.assertEqual(payload['grant_type'], 'client_credentials')
        self.assertEqual(payload['audience'], TOPUPS)
        self.assertEqual(self.cache.state_of(TOPUPS), FRESH)

    def test_fresh_token_is_reused(self):
        self.cache.get_token(TOPUPS)
        self.clock.advance(3600 - 301)

        self.assertEqual(self.cache.get_token(TOPUPS), 'token-1')
        self.assertEqual(self.session.post.call_count, 1)

    def test_token_inside_buffer_is_refreshed(self):
        """
        Scenario: token expires in 3600s, buffer is 300s
        Expected: at 3300s the token is already stale and exactly one refresh happens
        """
        self.cache.get_token(TOPUPS)
        self.session.post.return_value = token_response('token-2', expires_in=3600)
        self.clock.advance(3300)

        self.assertEqual(self.cache.state_of(TOPUPS), STALE)
        self.assertEqual(self.cache.get_token(TOPUPS), 'token-2')
        self.assertEqual(self.cache.get_token(TOPUPS), 'token-2')
        self.assertEqual(self.session.post.call_count, 2)

    def test_missing_expires_in_defaults_to_one_day(self):
        self.session.post.return_value = token_response('token-1', expires_in=None)
        self.cache.get_token(TOPUPS)

        self.clock.advance(86400 - 301)
        self.assertEqual(self.cache.state_of(TOPUPS), FRESH)
        self.clock.advance(2)
        self.assertEqual(self.cache.state_of(TOPUPS), STALE)

    def test_audiences_are_cached_independently(self):
        self.session.post.side_effect = lambda url, json, headers, timeout: token_response(
            f"token-for-{json['audience']}")

        self.assertEqual(self.cache.get_token(TOPUPS), f'token-for-{TOPUPS}')
        self.assertEqual(self.cache.get_token(UTILITIES), f'token-for-{UTILITIES}')
        self.assertEqual(self.session.post.call_count, 2)
        self.assertEqual(self.cache.snapshot(), {TOPUPS: FRESH, UTILITIES: FRESH})


class TestTokenCacheFailures(unittest.TestCase):
    """Any exchange failure is an AuthenticationFailure and leaves the cache as it was"""

    def setUp(self):
        self.clock = ManualClock()
        self.session = Mock()
        self.cache = ReloadlyTokenCache(
            client_id='id',
            client_secret='bad-secret',
            session=self.session,
            clock=self.clock,
        )

    def test_rejected_credentials_raise_authentication_failure(self):
        self.session.post.return_value = error_response(401)

        with self.assertRaises(AuthenticationFailure) as ctx:
            self.cache.get_token(TOPUPS)

        self.assertEqual(ctx.exception.kind, 'AuthenticationFailure')
        self.assertIn('401', ctx.exception.detail)
        self.assertEqual(self.cache.state_of(TOPUPS), STALE)

    def test_transport_failure_is_authentication_failure(self):
        self.session.post.side_effect = requests.exceptions.ConnectTimeout('connect timed out')

        with self.assertRaises(AuthenticationFailure):
            self.cache.get_token(TOPUPS)

    def test_response_without_token_is_rejected(self):
        response = Mock()
        response.status_code = 200
        response.json.return_value = {'expires_in': 3600}
        self.session.post.return_value = response

        with self.assertRaises(AuthenticationFailure):
            self.cache.get_token(TOPUPS)

    def test_invalid_json_is_rejected(self):
        response = Mock()
        response.status_code = 200
        response.json.side_effect = ValueError('no json')
        response.text = '<html>'
        self.session.post.return_value = response

        with self.assertRaises(AuthenticationFailure):
            self.cache.get_token(TOPUPS)

    def test_malformed_exchange_does_not_block_next_refresh(self):
        """
        Scenario: first exchange returns 200 with a JSON list, the next a valid token
        Expected: first call raises AuthenticationFailure, second call exchanges again
        """
        malformed = Mock()
        malformed.status_code = 200
        malformed.json.return_value = ['oops']
        malformed.text = "['oops']"
        self.session.post.side_effect = [malformed, token_response('token-2')]

        with self.assertRaises(AuthenticationFailure):
            self.cache.get_token(TOPUPS)
        self.assertEqual(self.cache.state_of(TOPUPS), STALE)

        self.assertEqual(self.cache.get_token(TOPUPS), 'token-2')
        self.assertEqual(self.session.post.call_count, 2)

    def test_non_numeric_expires_in_is_rejected(self):
        self.session.post.side_effect = [
            token_response('token-1', expires_in='soon'),
            token_response('token-2', expires_in=3600),
        ]

        with self.assertRaises(AuthenticationFailure) as ctx:
            self.cache.get_token(TOPUPS)
        self.assertIn('soon', ctx.exception.detail)

        self.assertEqual(self.cache.get_token(TOPUPS), 'token-2')

    def test_unexpected_exchange_error_clears_refresh(self):
        self.session.post.side_effect = [RuntimeError('session closed'), token_response('token-2')]

        with self.assertRaises(AuthenticationFailure):
            self.cache.get_token(TOPUPS)
        self.assertIsNone(self.cache._credentials[TOPUPS].flight)

        self.assertEqual(self.cache.get_token(TOPUPS), 'token-2')

    def test_failed_refresh_keeps_previous_token(self):
        self.session.post.return_value = token_response('token-1', expires_in=3600)
        self.cache.get_token(TOPUPS)
        self.clock.advance(3400)

        self.session.post.return_value = error_response(500, 'upstream down')
        with self.assertRaises(AuthenticationFailure):
            self.cache.get_token(TOPUPS)

        credential = self.cache._credentials[TOPUPS]
        self.assertEqual(credential.token, 'token-1')
        self.assertIsNone(credential.flight)
        self.assertEqual(self.cache.state_of(TOPUPS), STALE)

    def test_fallback_audience_used_when_secondary_fails(self):
        def exchange(url, json, headers, timeout):
            if json['audience'] == UTILITIES:
                return error_response(403)
            return token_response('topups-token')

        self.session.post.side_effect = exchange

        token = self.cache.get_token_with_fallback(UTILITIES, TOPUPS)

        self.assertEqual(token, 'topups-token')
        self.assertEqual(self.cache.state_of(UTILITIES), STALE)
        self.assertEqual(self.cache.state_of(TOPUPS), FRESH)


class TestTokenCacheSingleFlight(unittest.TestCase):
    """Concurrent callers that find the token stale share one exchange"""

    def test_concurrent_callers_trigger_one_exchange(self):
        entered = threading.Event()
        release = threading.Event()
        session = Mock()

        def slow_exchange(url, json, headers, timeout):
            entered.set()
            release.wait(5)
            return token_response('shared-token')

        session.post.side_effect = slow_exchange
        cache = ReloadlyTokenCache(client_id='id', client_secret='secret',
                                   session=session, clock=ManualClock(), timeout=5)

        tokens = []
        errors = []

        def worker():
            try:
                tokens.append(cache.get_token(TOPUPS))
            except Exception as e:
                errors.append(e)

        owner = threading.Thread(target=worker)
        owner.start()
        self.assertTrue(entered.wait(5))
        self.assertEqual(cache.state_of(TOPUPS), REFRESHING)

        waiters = [threading.Thread(target=worker) for _ in range(8)]
        for thread in waiters:
            thread.start()

        release.set()
        owner.join(5)
        for thread in waiters:
            thread.join(5)

        self.assertEqual(errors, [])
        self.assertEqual(tokens, ['shared-token'] * 9)
        self.assertEqual(session.post.call_count, 1)

    def test_waiters_receive_the_owner_failure(self):
        entered = threading.Event()
        release = threading.Event()
        session = Mock()

        def failing_exchange(url, json, headers, timeout):
            entered.set()
            release.wait(5)
            return error_response(401)

        session.post.side_effect = failing_exchange
        cache = ReloadlyTokenCache(client_id='id', client_secret='secret',
                                   session=session, clock=ManualClock(), timeout=5)

        outcomes = []

        def worker():
            try:
                outcomes.append(cache.get_token(TOPUPS))
            except AuthenticationFailure as e:
                outcomes.append(e.kind)

        owner = threading.Thread(target=worker)
        owner.start()
        self.assertTrue(entered.wait(5))
        waiter = threading.Thread(target=worker)
        waiter.start()

        release.set()
        owner.join(5)
        waiter.join(5)

        # Whether the waiter joined the flight or started its own, both fail
        self.assertEqual(outcomes, ['AuthenticationFailure', 'AuthenticationFailure'])


if __name__ == '__main__':
    unittest.main()
