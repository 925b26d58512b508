"""Metadata fetch pipeline.

One run per candidate URL:

    CACHE_CHECK -> NORMALIZE -> PRIMARY_FETCH -> [MOBILE_FALLBACK] -> EXTRACT
    -> CACHE_WRITE -> DONE

Each stage is a method that updates the run and returns the next stage, so a
single transition can be driven in isolation. Any stage may end the run in
FAILED with an Outcome describing why. `FetchPipeline.run` never raises.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional

from .cache import MetadataCache
from .extractor import LinkMetadata, MetadataExtractor
from .net.fetcher import DESKTOP, MOBILE, FetchResult, PageFetcher
from .url_tools import normalize_share_url, to_mobile_url

logger = logging.getLogger(__name__)

DEFAULT_BLOCKED_STATUSES = frozenset({400, 401, 403})


class Stage(Enum):
    CACHE_CHECK = "cache_check"
    NORMALIZE = "normalize"
    PRIMARY_FETCH = "primary_fetch"
    MOBILE_FALLBACK = "mobile_fallback"
    EXTRACT = "extract"
    CACHE_WRITE = "cache_write"
    DONE = "done"
    FAILED = "failed"


class Outcome(Enum):
    CACHED = "cached"
    FETCHED = "fetched"
    FETCHED_MOBILE = "fetched_mobile"
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    UPSTREAM_ERROR = "upstream_error"
    EXTRACTION_EMPTY = "extraction_empty"
    INTERNAL_ERROR = "internal_error"


TERMINAL_STAGES = frozenset({Stage.DONE, Stage.FAILED})
SUCCESS_OUTCOMES = frozenset({Outcome.CACHED, Outcome.FETCHED, Outcome.FETCHED_MOBILE})


@dataclass
class PipelineRun:
    """Mutable state for one URL moving through the pipeline."""
    url: str
    fetch_url: str = ""
    source_url: str = ""
    fetch: Optional[FetchResult] = None
    fallback_fetch: Optional[FetchResult] = None
    metadata: Optional[LinkMetadata] = None
    outcome: Optional[Outcome] = None
    from_fallback: bool = False
    trail: List[Stage] = field(default_factory=list)


class FetchPipeline:
    """Fetch, extract and cache Open Graph metadata for Facebook URLs."""

    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: Optional[MetadataExtractor] = None,
        cache: Optional[MetadataCache] = None,
        blocked_statuses: Iterable[int] = DEFAULT_BLOCKED_STATUSES,
    ):
        """Initialize fetch pipeline.

        Args:
            fetcher: HTTP boundary
            extractor: HTML metadata extractor
            cache: Optional metadata cache; without it every run fetches
            blocked_statuses: Statuses that look like bot blocking and
                trigger the mobile fallback
        """
        self.fetcher = fetcher
        self.extractor = extractor or MetadataExtractor()
        self.cache = cache
        self.blocked_statuses: FrozenSet[int] = frozenset(blocked_statuses)

        self._handlers: Dict[Stage, Callable[[PipelineRun], Awaitable[Stage]]] = {
            Stage.CACHE_CHECK: self.check_cache,
            Stage.NORMALIZE: self.normalize,
            Stage.PRIMARY_FETCH: self.primary_fetch,
            Stage.MOBILE_FALLBACK: self.mobile_fallback,
            Stage.EXTRACT: self.extract,
            Stage.CACHE_WRITE: self.write_cache,
        }

        self.stats: Dict[str, int] = {outcome.value: 0 for outcome in Outcome}

    async def run(self, url: str) -> Optional[LinkMetadata]:
        """Resolve metadata for a URL.

        Args:
            url: URL as it appeared in the message

        Returns:
            LinkMetadata, or None when no preview can be produced
        """
        run = await self.execute(url)
        if run.outcome in SUCCESS_OUTCOMES:
            return run.metadata
        return None

    async def execute(self, url: str) -> PipelineRun:
        """Drive a URL through every stage and return the finished run."""
        run = PipelineRun(url=url)
        stage = Stage.CACHE_CHECK

        try:
            while stage not in TERMINAL_STAGES:
                run.trail.append(stage)
                stage = await self.step(run, stage)
        except Exception as e:
            logger.error(f"Error fetching metadata for {url}: {e}", exc_info=True)
            run.metadata = None
            run.outcome = Outcome.INTERNAL_ERROR
            stage = Stage.FAILED

        run.trail.append(stage)
        if run.outcome is not None:
            self.stats[run.outcome.value] += 1
        return run

    async def step(self, run: PipelineRun, stage: Stage) -> Stage:
        handler = self._handlers.get(stage)
        if handler is None:
            raise ValueError(f"No handler for stage {stage}")
        return await handler(run)

    async def check_cache(self, run: PipelineRun) -> Stage:
        if self.cache is None:
            return Stage.NORMALIZE

        cached = await self.cache.get(run.url)
        if cached is None:
            logger.debug(f"Cache miss for {run.url}")
            return Stage.NORMALIZE

        logger.info(f"Cache hit for {run.url}")
        run.metadata = cached
        run.outcome = Outcome.CACHED
        return Stage.DONE

    async def normalize(self, run: PipelineRun) -> Stage:
        run.fetch_url = normalize_share_url(run.url)
        if run.fetch_url != run.url:
            logger.debug(f"Normalized share link {run.url} -> {run.fetch_url}")
        return Stage.PRIMARY_FETCH

    async def primary_fetch(self, run: PipelineRun) -> Stage:
        url = run.fetch_url or run.url
        result = await self.fetcher.fetch(url, DESKTOP)
        run.fetch = result

        if result.ok:
            run.source_url = url
            return Stage.EXTRACT

        if result.timed_out:
            logger.warning(f"Primary fetch timed out for {url}")
            run.outcome = Outcome.TIMEOUT
            return Stage.FAILED

        if result.status in self.blocked_statuses:
            logger.info(f"Primary fetch blocked with HTTP {result.status} for {url}, trying mobile site")
            run.outcome = Outcome.BLOCKED
            return Stage.MOBILE_FALLBACK

        logger.info(f"Primary fetch failed for {url}: {result.error}")
        run.outcome = Outcome.UPSTREAM_ERROR
        return Stage.FAILED

    async def mobile_fallback(self, run: PipelineRun) -> Stage:
        mobile_url = to_mobile_url(run.fetch_url or run.url)
        result = await self.fetcher.fetch(mobile_url, MOBILE)
        run.fallback_fetch = result

        if not result.ok:
            logger.error(f"Mobile fallback failed for {mobile_url}: {result.error}")
            if result.timed_out:
                run.outcome = Outcome.TIMEOUT
            return Stage.FAILED

        run.source_url = mobile_url
        run.from_fallback = True
        return Stage.EXTRACT

    async def extract(self, run: PipelineRun) -> Stage:
        result = run.fallback_fetch if run.from_fallback else run.fetch
        metadata = self.extractor.extract(result.html if result else "", run.source_url)

        if metadata is None:
            logger.info(f"No metadata extracted for {run.url}")
            run.outcome = Outcome.EXTRACTION_EMPTY
            return Stage.FAILED

        run.metadata = metadata
        if run.from_fallback:
            # Fallback results are never cached
            run.outcome = Outcome.FETCHED_MOBILE
            return Stage.DONE

        run.outcome = Outcome.FETCHED
        return Stage.CACHE_WRITE

    async def write_cache(self, run: PipelineRun) -> Stage:
        if self.cache is not None and run.metadata is not None:
            await self.cache.put(run.url, run.metadata)
        return Stage.DONE

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)
