"""
Rich link previews for Facebook URLs posted in chat.

This package provides:
- extract_candidate_urls / is_target_platform_url: Find Facebook links in messages
- MetadataExtractor: Tolerant regex-based Open Graph extraction
- MetadataCache: TTL cache over a key-value store
- FetchPipeline: Cache -> fetch -> mobile fallback -> extract -> cache write
- SlidingWindowLimiter: Per-channel admission control
- PreviewService: Message handler tying the pieces together
"""

from .cache import KeyValueStore, MemoryStore, MetadataCache, StoreError
from .embed import build_embed
from .extractor import LinkMetadata, MetadataExtractor, extract_metadata
from .limits import SlidingWindowLimiter
from .net.fetcher import FetchResult, PageFetcher
from .pipeline import FetchPipeline, Outcome, Stage
from .service import MessageReport, MessageSender, PreviewService
from .url_tools import extract_candidate_urls, is_target_platform_url

__all__ = [
    'KeyValueStore',
    'MemoryStore',
    'MetadataCache',
    'StoreError',
    'build_embed',
    'LinkMetadata',
    'MetadataExtractor',
    'extract_metadata',
    'SlidingWindowLimiter',
    'FetchResult',
    'PageFetcher',
    'FetchPipeline',
    'Outcome',
    'Stage',
    'MessageReport',
    'MessageSender',
    'PreviewService',
    'extract_candidate_urls',
    'is_target_platform_url',
]
