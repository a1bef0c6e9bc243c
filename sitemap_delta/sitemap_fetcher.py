"""
1.0 Sitemap Fetcher Module
Fetches sitemap and robots.txt bodies over HTTP with bounded retry.

Key features:
- Fixed per-request timeout and identifying user agent
- Linear backoff between attempts (1s, 2s, ...), none after the last one
- Only 2xx responses count as success
- Transparent gunzip of compressed sitemaps (.xml.gz)
- Session reuse for connection pooling; no other state is shared between calls
"""

import gzip
import logging
import time
import zlib
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from sitemap_delta.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SitemapMonitor/1.0;)"
DEFAULT_TIMEOUT = 10
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0

GZIP_MAGIC = b"\x1f\x8b"


class SitemapFetcher:
    """
    2.0 SitemapFetcher Class
    Fetches a URL with a fixed number of attempts and linear backoff.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None):
        """
        2.1 Initialize the fetcher.

        Args:
            config: Configuration dictionary with optional keys:
                - user_agent: Custom user agent string
                - timeout: Per-request timeout in seconds (default: 10)
                - max_retries: Attempts per URL (default: 3)
                - retry_delay: Seconds of backoff per attempt index (default: 1.0)
                - max_sitemap_workers: Sizes the connection pool
            session: Optional pre-built session (tests inject a fake one)
        """
        config = config or {}

        self.user_agent = config.get("user_agent", DEFAULT_USER_AGENT)
        if not isinstance(self.user_agent, str) or not self.user_agent.strip():
            self.user_agent = DEFAULT_USER_AGENT
            logger.warning(f"Invalid user_agent in config. Using default: {self.user_agent}")

        self.timeout = config.get("timeout", DEFAULT_TIMEOUT)
        self.max_attempts = max(1, int(config.get("max_retries", DEFAULT_MAX_ATTEMPTS)))
        self.retry_delay = float(config.get("retry_delay", DEFAULT_RETRY_DELAY))
        pool_size = max(10, int(config.get("max_sitemap_workers", 4)) * 2)

        self.session = session or self._create_session(pool_size)

        logger.debug(
            f"SitemapFetcher initialized: "
            f"User-Agent={self.user_agent[:50]}, "
            f"timeout={self.timeout}s, "
            f"attempts={self.max_attempts}"
        )

    def _create_session(self, pool_size: int) -> requests.Session:
        """
        2.2 Create a pooled requests Session.

        Retries are driven by fetch() so the adapter itself never retries.
        """
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=0, pool_connections=pool_size, pool_maxsize=pool_size)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def fetch(self, url: str, max_attempts: Optional[int] = None) -> str:
        """
        2.3 Fetch a URL and return its body as text.

        Args:
            url: Absolute URL to fetch
            max_attempts: Overrides the configured number of attempts

        Returns:
            The decoded response body of the first 2xx response

        Raises:
            FetchError: when every attempt failed; carries the last error
        """
        attempts = max(1, max_attempts if max_attempts is not None else self.max_attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                response = self.session.get(
                    url,
                    timeout=self.timeout,
                    headers={"User-Agent": self.user_agent},
                )
                if 200 <= response.status_code < 300:
                    body = self._decode_body(response)
                    logger.debug(
                        f"Fetched {url} (status={response.status_code}, size={len(body):,} chars, attempt={attempt})"
                    )
                    return body
                last_error = requests.HTTPError(f"HTTP {response.status_code} for {url}", response=response)
                logger.debug(f"Attempt {attempt}/{attempts} for {url}: status={response.status_code}")

            except requests.exceptions.Timeout as e:
                last_error = e
                logger.debug(f"Attempt {attempt}/{attempts} for {url}: timeout after {self.timeout}s")

            except requests.exceptions.RequestException as e:
                last_error = e
                logger.debug(f"Attempt {attempt}/{attempts} for {url}: {type(e).__name__}: {e}")

            if attempt < attempts:
                time.sleep(attempt * self.retry_delay)

        logger.info(f"Giving up on {url} after {attempts} attempts: {last_error}")
        raise FetchError(url, attempts, last_error) from last_error

    @staticmethod
    def _decode_body(response: requests.Response) -> str:
        """Return the body as text, gunzipping compressed sitemap files."""
        content = response.content or b""
        if content[:2] == GZIP_MAGIC:
            try:
                return gzip.decompress(content).decode("utf-8", errors="replace")
            except (OSError, EOFError, zlib.error) as e:
                logger.warning(f"Could not gunzip {response.url}: {e}")
        return response.text
