"""Rich embed payloads built from link metadata."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .extractor import LinkMetadata

FACEBOOK_BLUE = 0x1877F2
DESCRIPTION_LIMIT = 4096


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(suffix)] + suffix


def build_embed(
    metadata: LinkMetadata,
    original_url: str,
    color: int = FACEBOOK_BLUE,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build a rich embed for a link preview.

    Args:
        metadata: Extracted metadata
        original_url: URL as posted, used when metadata has no canonical URL
        color: Embed accent colour
        timestamp: Embed timestamp, defaults to now (UTC)

    Returns:
        Embed dict ready to be sent in a message payload
    """
    embed: Dict[str, Any] = {
        "type": "rich",
        "color": color,
        "url": metadata.url or original_url,
    }

    if metadata.title:
        embed["title"] = metadata.title

    if metadata.description:
        embed["description"] = truncate(metadata.description, DESCRIPTION_LIMIT)

    # Profile picture sits next to the title
    if metadata.thumbnail:
        embed["thumbnail"] = {"url": metadata.thumbnail}

    if metadata.image and metadata.image != metadata.thumbnail:
        embed["image"] = {"url": metadata.image}

    if metadata.site_name:
        embed["footer"] = {"text": metadata.site_name}

    embed["timestamp"] = (timestamp or datetime.now(timezone.utc)).isoformat()
    return embed
