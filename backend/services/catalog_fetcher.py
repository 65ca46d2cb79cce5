"""
Upstream catalog fetching.

Retrieves raw orbital element records near an observer from the upstream
catalog source (keeptrack.space by default). The response shape is left
untouched here; see element_extractor for normalization.
"""
import time
from threading import Lock
from typing import Any, Optional

import requests

from logging_config import get_logger
from models import Observer
from utils.exceptions import UpstreamUnavailable

logger = get_logger(__name__)


class ElementSetCatalogFetcher:
    """
    HTTP client for the upstream catalog source.

    Every call uses a bounded timeout. Repeated calls for the same observer
    cell within `min_interval` seconds are refused to keep request-driven
    refreshes from hammering the source.
    """

    DEFAULT_URL = 'https://api.keeptrack.space/v2/sats'

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: float = 8.0,
        min_interval: int = 30,
        session: Optional[requests.Session] = None,
        clock=None
    ):
        self.url = url
        self.timeout = timeout
        self.min_interval = min_interval
        self.session = session or requests.Session()
        self.session.headers.setdefault('Accept', 'application/json')

        # Rate limiting
        self._clock = clock or time.time
        self._rate_limit_lock = Lock()
        self._last_fetch_time = {}  # {observer cell: timestamp}

    @classmethod
    def from_config(cls, app_config, session: Optional[requests.Session] = None) -> 'ElementSetCatalogFetcher':
        return cls(
            url=app_config.get('UPSTREAM_URL', cls.DEFAULT_URL),
            timeout=float(app_config.get('UPSTREAM_TIMEOUT', 8.0)),
            min_interval=int(app_config.get('UPSTREAM_MIN_INTERVAL', 30)),
            session=session,
        )

    def fetch(self, observer: Observer, force: bool = False) -> Optional[Any]:
        """
        Fetch the raw catalog payload for an observer location.

        Args:
            observer: Observer location
            force: Skip the rate limit check

        Returns:
            The decoded JSON payload, or None if the call was rate limited

        Raises:
            UpstreamUnavailable: on timeout, connection error, non-2xx status
                or a body that is not JSON
        """
        key = observer.cell_key()
        if not force and not self._check_rate_limit(key):
            return None

        params = {
            'lat': observer.latitude,
            'lon': observer.longitude,
            'alt': 0,
        }

        logger.info(f"[Fetcher] Fetching catalog for observer ({observer.latitude:.4f}, {observer.longitude:.4f})")
        try:
            payload = self._request(params)
        except UpstreamUnavailable:
            self._release_rate_limit(key)
            raise

        self._update_rate_limit(key)
        return payload

    def _request(self, params) -> Any:
        """GET the catalog and decode it. Raises UpstreamUnavailable."""
        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            logger.warning(f"[Fetcher] Upstream timed out after {self.timeout}s: {e}")
            raise UpstreamUnavailable(f'Upstream catalog timed out after {self.timeout:g}s') from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else 'unknown'
            logger.warning(f"[Fetcher] Upstream returned HTTP {status}")
            raise UpstreamUnavailable(f'Upstream catalog returned HTTP {status}') from e
        except requests.RequestException as e:
            logger.warning(f"[Fetcher] Upstream request failed: {e}")
            raise UpstreamUnavailable(f'Failed to fetch satellite data: {e}') from e

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"[Fetcher] Upstream returned non-JSON body: {response.text[:200]}")
            raise UpstreamUnavailable('Upstream catalog returned an invalid JSON body') from e

    # ==================== Rate Limiting ====================

    def _check_rate_limit(self, key: str) -> bool:
        """
        Return True if an upstream call for `key` is allowed now.

        An allowed call reserves the slot under the same lock, so concurrent
        callers for one cell cannot both pass.
        """
        if self.min_interval <= 0:
            return True
        with self._rate_limit_lock:
            now = self._clock()
            self._prune_rate_limits(now)
            last_time = self._last_fetch_time.get(key)
            if last_time is not None and now - last_time < self.min_interval:
                remaining = int(self.min_interval - (now - last_time))
                logger.info(f"[RateLimit] {key}: rate limited, {remaining}s remaining")
                return False
            self._last_fetch_time[key] = now
            return True

    def _update_rate_limit(self, key: str):
        """Record a successful fetch for `key`."""
        if self.min_interval <= 0:
            return
        with self._rate_limit_lock:
            now = self._clock()
            self._prune_rate_limits(now)
            self._last_fetch_time[key] = now

    def _release_rate_limit(self, key: str):
        """Drop the reservation of a failed fetch so the next call may retry."""
        with self._rate_limit_lock:
            self._last_fetch_time.pop(key, None)

    def _prune_rate_limits(self, now: float):
        """Forget cells whose interval has elapsed. Caller holds the lock."""
        expired = [key for key, last_time in self._last_fetch_time.items()
                   if now - last_time >= self.min_interval]
        for key in expired:
            del self._last_fetch_time[key]
