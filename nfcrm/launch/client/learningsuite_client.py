"""LearningSuite REST API client.

Auth: static API key in the ``x-api-key`` header. Only the member roster
endpoints used by the launch import are wrapped here.
"""

import time
from urllib.parse import quote

import requests

from ..config import LEARNINGSUITE_API_BASE, REQUEST_TIMEOUT, MAX_RETRIES, RETRY_BASE_DELAY
from .exceptions import (
    AuthenticationError, NetworkError, TimeoutError, APIError, ParseError
)


class LearningSuiteClient:
    """Client for the LearningSuite public API (v1)."""

    def __init__(self, api_key, base_url=None, timeout=None):
        if not api_key:
            raise AuthenticationError('LEARNINGSUITE_API_KEY not configured')
        self.base_url = (base_url or LEARNINGSUITE_API_BASE).rstrip('/')
        self.timeout = timeout or REQUEST_TIMEOUT
        self._session = requests.Session()
        self._session.headers.update({
            'x-api-key': api_key,
            'Content-Type': 'application/json',
        })

    def _request(self, method, endpoint, params=None):
        """Make API request, retrying timeouts and connection errors.

        Every other requests failure surfaces as NetworkError without a retry.
        """
        url = f"{self.base_url}{endpoint}"
        for attempt in range(MAX_RETRIES):
            try:
                resp = self._session.request(method, url, params=params, timeout=self.timeout)
            except requests.exceptions.Timeout:
                if attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_BASE_DELAY * (attempt + 1))
                    continue
                raise TimeoutError(f"Timeout: {method} {endpoint}")
            except requests.exceptions.ConnectionError as e:
                if attempt < MAX_RETRIES - 1:
                    time.sleep(RETRY_BASE_DELAY * (attempt + 1))
                    continue
                raise NetworkError(f"Connection error: {e}")
            except requests.exceptions.RequestException as e:
                raise NetworkError(f"Request failed: {e}")

            if resp.status_code in (401, 403):
                raise AuthenticationError(f'API key rejected (HTTP {resp.status_code})', code=resp.status_code)

            if resp.status_code >= 400:
                raise APIError(
                    f'LearningSuite API error: {resp.status_code} - {resp.text[:200]}',
                    status_code=resp.status_code,
                )

            return self._parse_json(resp)

        raise NetworkError(f"Max retries exceeded for {method} {endpoint}")

    def _parse_json(self, resp):
        """Parse JSON response, raise ParseError on failure."""
        try:
            return resp.json()
        except (ValueError, TypeError) as e:
            raise ParseError(f"Invalid JSON response: {e}")

    # ── Member endpoints ──

    def get_members(self):
        """GET /members — every member on the platform."""
        return self._request('GET', '/members')

    def get_course_members(self, course_id):
        """GET /courses/{course_id}/members"""
        return self._request('GET', f'/courses/{quote(str(course_id), safe="")}/members')

    def close(self):
        """Close the underlying session."""
        if self._session:
            self._session.close()
