import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .embed import FACEBOOK_BLUE, build_embed
from .limits import SlidingWindowLimiter
from .pipeline import FetchPipeline
from .url_tools import extract_candidate_urls

logger = logging.getLogger(__name__)


class MessageSender(Protocol):
    """Chat transport used to act on the original message."""

    async def suppress_embeds(self, channel_id: str, message_id: str, flags: Optional[int]) -> None:
        ...

    async def reply(
        self,
        channel_id: str,
        message_id: str,
        guild_id: Optional[str],
        payload: Dict[str, Any],
    ) -> Any:
        ...


@dataclass
class MessageReport:
    message_id: Optional[str] = None
    channel_id: Optional[str] = None
    urls: List[str] = field(default_factory=list)
    admitted: bool = False
    replied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class PreviewService:

    def __init__(
        self,
        pipeline: FetchPipeline,
        limiter: SlidingWindowLimiter,
        sender: MessageSender,
        suppress_delay_sec: float = 0.6,
        embed_color: int = FACEBOOK_BLUE,
    ):
        self.pipeline = pipeline
        self.limiter = limiter
        self.sender = sender
        self.suppress_delay_sec = suppress_delay_sec
        self.embed_color = embed_color

        self.stats = {
            "messages_seen": 0,
            "messages_with_links": 0,
            "rate_limited": 0,
            "previews_sent": 0,
            "previews_skipped": 0,
            "preview_errors": 0,
        }

    async def on_message(self, message: Dict[str, Any]) -> MessageReport:
        """Handle a message-create event from the gateway.

        Args:
            message: Event payload with id, author, content, channel_id,
                guild_id and optionally flags

        Returns:
            MessageReport describing what was done for the message
        """
        self.stats["messages_seen"] += 1
        author = message.get("author") or {}
        channel_id = message.get("channel_id")
        message_id = message.get("id")
        report = MessageReport(message_id=message_id, channel_id=channel_id)

        if author.get("bot") or not channel_id:
            return report

        if not message_id:
            logger.error("Missing message ID in message data")
            return report

        urls = extract_candidate_urls(message.get("content") or "")
        report.urls = urls
        if not urls:
            return report

        self.stats["messages_with_links"] += 1
        logger.info(f"Processing {len(urls)} Facebook URL(s) from message {message_id} in channel {channel_id}")

        if not self.limiter.admit(channel_id):
            self.stats["rate_limited"] += 1
            logger.info(f"Rate limit exceeded for channel {channel_id}")
            return report
        report.admitted = True

        await self._suppress_native_embeds(channel_id, message_id, message.get("flags"))

        guild_id = message.get("guild_id")
        results = await asyncio.gather(
            *(self._preview_url(url, channel_id, message_id, guild_id) for url in urls),
            return_exceptions=True,
        )

        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                self.stats["preview_errors"] += 1
                report.failed.append(url)
                logger.error(
                    f"Error processing Facebook URL {url} (message {message_id}, channel {channel_id}): {result}",
                    exc_info=result,
                )
            elif result:
                self.stats["previews_sent"] += 1
                report.replied.append(url)
            else:
                self.stats["previews_skipped"] += 1
                report.skipped.append(url)

        return report

    async def _suppress_native_embeds(self, channel_id: str, message_id: str, flags: Optional[int]):
        if self.suppress_delay_sec > 0:
            await asyncio.sleep(self.suppress_delay_sec)
        try:
            await self.sender.suppress_embeds(channel_id, message_id, flags)
            logger.info(f"Suppressed embeds for message {message_id}")
        except Exception as e:
            logger.error(f"Failed to suppress embeds for message {message_id}: {e}")

    async def _preview_url(
        self,
        url: str,
        channel_id: str,
        message_id: str,
        guild_id: Optional[str],
    ) -> bool:
        logger.info(f"Fetching metadata for {url}")
        metadata = await self.pipeline.run(url)

        if metadata is None or not metadata.is_valid():
            logger.warning(f"No metadata extracted for {url}")
            return False

        embed = build_embed(metadata, url, color=self.embed_color)
        await self.sender.reply(channel_id, message_id, guild_id, {"embeds": [embed]})
        logger.info(f"Replied with embed for {url}")
        return True

    def get_stats(self) -> dict:
        return {
            **self.stats,
            "limiter": self.limiter.get_stats(),
            "pipeline": self.pipeline.get_stats(),
        }
