import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .cache import MemoryStore, MetadataCache
from .config import ConfigError, PreviewConfig
from .embed import build_embed
from .extractor import MetadataExtractor
from .net.fetcher import PageFetcher
from .pipeline import SUCCESS_OUTCOMES, FetchPipeline
from .url_tools import is_target_platform_url


def _attach_file_logging(log_path: Path, level: str) -> None:
    logger = logging.getLogger()

    for h in logger.handlers:
        if isinstance(h, logging.FileHandler):
            if Path(getattr(h, "baseFilename", "")) == log_path.resolve():
                return

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def setup_logging(config: PreviewConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logs.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if config.logs.log_file:
        _attach_file_logging(Path(config.logs.log_file), config.logs.log_level)


def build_pipeline(config: PreviewConfig, fetcher: PageFetcher) -> FetchPipeline:
    cache = MetadataCache(
        MemoryStore(),
        ttl_sec=config.cache.ttl_sec,
        key_prefix=config.cache.key_prefix,
    )
    return FetchPipeline(
        fetcher,
        MetadataExtractor(),
        cache=cache,
        blocked_statuses=config.fetch.blocked_statuses,
    )


def print_run(url: str, run, show_embed: bool, embed_color: int) -> None:
    print(f"\n{url}")
    print("-" * 60)
    print(f"Stages:  {' -> '.join(stage.value for stage in run.trail)}")
    print(f"Outcome: {run.outcome.value if run.outcome else 'none'}")

    metadata = run.metadata
    if metadata is None:
        print("No metadata found or failed to fetch")
        return

    for label, value in (
        ("Title", metadata.title),
        ("Description", metadata.description),
        ("Image", metadata.image),
        ("Thumbnail", metadata.thumbnail),
        ("URL", metadata.url),
        ("Site name", metadata.site_name),
        ("Type", metadata.type),
    ):
        if value:
            print(f"{label + ':':<13}{value}")

    if show_embed:
        print("\nEmbed:")
        print(json.dumps(build_embed(metadata, url, color=embed_color), indent=2, ensure_ascii=False))


async def inspect_urls(config: PreviewConfig, urls: List[str], show_embed: bool) -> int:
    failures = 0
    async with PageFetcher(
        timeout_ms=config.fetch.timeout_ms,
        desktop_user_agent=config.fetch.desktop_user_agent,
        mobile_user_agent=config.fetch.mobile_user_agent,
        accept_language=config.fetch.accept_language,
        http2=config.fetch.http2,
    ) as fetcher:
        pipeline = build_pipeline(config, fetcher)
        for url in urls:
            if not is_target_platform_url(url):
                print(f"\n{url}\n{'-' * 60}\nNot a Facebook URL, skipping")
                failures += 1
                continue
            run = await pipeline.execute(url)
            print_run(url, run, show_embed, config.bot.embed_color)
            if run.outcome not in SUCCESS_OUTCOMES:
                failures += 1

    return 1 if failures else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch and print Facebook link preview metadata")

    parser.add_argument("urls", nargs="+", metavar="URL", help="Facebook URL(s) to inspect")
    parser.add_argument(
        "--config",
        required=False,
        help="Path to config YAML file (defaults are used when omitted)",
        default=None,
    )
    parser.add_argument("--embed", action="store_true", help="Also print the embed payload")

    args = parser.parse_args(argv)

    try:
        config = PreviewConfig.from_yaml(args.config) if args.config else PreviewConfig()
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2

    setup_logging(config)
    return asyncio.run(inspect_urls(config, args.urls, args.embed))


if __name__ == "__main__":
    sys.exit(main())
