"""Page fetcher for Facebook HTML.

Single GET per call with a browser header profile and a hard timeout. The
fetcher never raises for HTTP or network failures; callers inspect the
returned FetchResult instead.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)

DESKTOP = "desktop"
MOBILE = "mobile"

DEFAULT_TIMEOUT_MS = 10000

DEFAULT_DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"


@dataclass
class FetchResult:
    ok: bool
    status: int = 0
    url: str = ""
    html: str = ""
    error: str = ""
    timed_out: bool = False
    latency_ms: float = 0.0


class PageFetcher:
    """Async HTTP fetcher with desktop and mobile browser profiles."""

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        desktop_user_agent: str = DEFAULT_DESKTOP_USER_AGENT,
        mobile_user_agent: str = DEFAULT_MOBILE_USER_AGENT,
        accept_language: str = DEFAULT_ACCEPT_LANGUAGE,
        http2: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize page fetcher.

        Args:
            timeout_ms: Upper bound for a whole request, redirects included
            desktop_user_agent: User agent for the primary fetch
            mobile_user_agent: User agent for the mobile fallback
            accept_language: Accept-Language header
            http2: Negotiate HTTP/2 where the server supports it
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {timeout_ms}")

        self.timeout_sec = timeout_ms / 1000
        self.desktop_user_agent = desktop_user_agent
        self.mobile_user_agent = mobile_user_agent
        self.accept_language = accept_language

        client_kwargs = {
            "timeout": httpx.Timeout(self.timeout_sec),
            "follow_redirects": True,
            "max_redirects": 10,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        else:
            client_kwargs["http2"] = http2

        self.client = httpx.AsyncClient(**client_kwargs)

        # Statistics
        self.total_fetches = 0
        self.successful_fetches = 0
        self.failed_fetches = 0
        self.timeouts = 0
        self.bytes_downloaded = 0

    def headers_for(self, profile: str) -> Dict[str, str]:
        if profile == MOBILE:
            return {
                "User-Agent": self.mobile_user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": self.accept_language,
                "Accept-Encoding": "gzip, deflate, br",
            }
        if profile == DESKTOP:
            return {
                "User-Agent": self.desktop_user_agent,
                "Accept": (
                    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
                    "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
                ),
                "Accept-Language": self.accept_language,
                "DNT": "1",
                "Connection": "keep-alive",
                "Upgrade-Insecure-Requests": "1",
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "none",
                "Sec-Fetch-User": "?1",
                "Cache-Control": "max-age=0",
                "Referer": "https://www.facebook.com/",
            }
        raise ValueError(f"Unknown header profile: {profile}")

    async def fetch(self, url: str, profile: str = DESKTOP) -> FetchResult:
        """Fetch a page.

        Args:
            url: URL to fetch
            profile: Header profile, "desktop" or "mobile"

        Returns:
            FetchResult; ok is True only for a 2xx response
        """
        headers = self.headers_for(profile)
        self.total_fetches += 1
        start_time = time.time()

        try:
            # wait_for cancels the pending request once the bound is hit
            response = await asyncio.wait_for(
                self.client.get(url, headers=headers),
                timeout=self.timeout_sec,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.failed_fetches += 1
            self.timeouts += 1
            latency_ms = (time.time() - start_time) * 1000
            logger.warning(f"Timeout after {self.timeout_sec * 1000:.0f}ms fetching {url} ({profile})")
            return FetchResult(
                ok=False,
                url=url,
                error=f"Request timeout after {self.timeout_sec * 1000:.0f}ms",
                timed_out=True,
                latency_ms=latency_ms,
            )
        except httpx.HTTPError as e:
            self.failed_fetches += 1
            logger.warning(f"Request error for {url} ({profile}): {e}")
            return FetchResult(
                ok=False,
                url=url,
                error=str(e) or e.__class__.__name__,
                latency_ms=(time.time() - start_time) * 1000,
            )

        latency_ms = (time.time() - start_time) * 1000
        final_url = str(response.url)

        if not response.is_success:
            self.failed_fetches += 1
            logger.info(f"HTTP {response.status_code} for {url} ({profile})")
            return FetchResult(
                ok=False,
                status=response.status_code,
                url=final_url,
                error=f"HTTP {response.status_code}",
                latency_ms=latency_ms,
            )

        self.successful_fetches += 1
        self.bytes_downloaded += len(response.content)
        logger.debug(f"Fetched {url} ({profile}) -> {final_url} in {latency_ms:.0f}ms")

        return FetchResult(
            ok=True,
            status=response.status_code,
            url=final_url,
            html=response.text,
            latency_ms=latency_ms,
        )

    def get_stats(self) -> dict:
        return {
            "total_fetches": self.total_fetches,
            "successful_fetches": self.successful_fetches,
            "failed_fetches": self.failed_fetches,
            "timeouts": self.timeouts,
            "bytes_downloaded": self.bytes_downloaded,
        }

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
        logger.info(
            f"Page fetcher closed - fetches: {self.total_fetches}, "
            f"successes: {self.successful_fetches}, timeouts: {self.timeouts}"
        )

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
