"""URL utility functions for recognising and rewriting Facebook links.

Provides the classifier used to pick candidate links out of chat messages,
plus the host rewrites the fetch pipeline applies before requesting a page.
"""

import re
from typing import List
from urllib.parse import urlsplit


# Exact hosts accepted in addition to any *.facebook.com subdomain
FACEBOOK_HOSTS = frozenset({
    "facebook.com",
    "www.facebook.com",
    "m.facebook.com",
    "fb.com",
    "www.fb.com",
})

FACEBOOK_SUFFIX = ".facebook.com"

# Stops at whitespace and at the bracket/quote characters chat clients wrap links in
_URL_TOKEN_RE = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+", re.IGNORECASE)

_SHARE_HOST_RE = re.compile(r"^(https?://)(m\.|www\.)?(facebook\.com)")
_WWW_HOST_RE = re.compile(r"www\.facebook\.com")


def is_target_platform_url(url: str) -> bool:
    """Check if URL points at Facebook.

    Args:
        url: Candidate URL string

    Returns:
        True if the host is a Facebook host, False otherwise or if the
        string cannot be parsed
    """
    try:
        host = urlsplit(url).hostname
    except (ValueError, TypeError, AttributeError):
        return False

    if not host:
        return False

    host = host.lower()
    return host in FACEBOOK_HOSTS or host.endswith(FACEBOOK_SUFFIX)


def extract_candidate_urls(text: str) -> List[str]:
    """Extract all Facebook URLs from free text.

    Order of appearance is preserved and repeated links are kept, so a
    message that posts the same link twice yields two entries.

    Args:
        text: Message body

    Returns:
        List of Facebook URLs
    """
    if not text:
        return []

    return [url for url in _URL_TOKEN_RE.findall(text) if is_target_platform_url(url)]


def normalize_share_url(url: str) -> str:
    """Rewrite share links to the www host, which serves richer metadata.

    Share links (``/share/...``) redirect to the actual post; fetching them
    through www.facebook.com keeps the redirect on the desktop site.
    """
    if "/share/" not in url:
        return url
    return _SHARE_HOST_RE.sub(r"\1www.\3", url, count=1)


def to_mobile_url(url: str) -> str:
    """Swap the www host for the mobile site."""
    return _WWW_HOST_RE.sub("m.facebook.com", url, count=1)
