import json
import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Pattern

from .decode import clean_escapes, code_point_to_char, decode_entities

logger = logging.getLogger(__name__)


# Wire keys used when metadata is serialized into the cache
_FIELD_TO_KEY = {
    "title": "title",
    "description": "description",
    "image": "image",
    "thumbnail": "thumbnail",
    "url": "url",
    "site_name": "siteName",
    "type": "type",
}
_KEY_TO_FIELD = {key: name for name, key in _FIELD_TO_KEY.items()}


@dataclass(frozen=True)
class LinkMetadata:
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    thumbnail: Optional[str] = None
    url: Optional[str] = None
    site_name: Optional[str] = None
    type: Optional[str] = None

    def is_valid(self) -> bool:
        return bool(self.title or self.description)

    def to_dict(self) -> Dict[str, str]:
        """Serializable form, absent fields omitted."""
        return {
            _FIELD_TO_KEY[name]: value
            for name, value in asdict(self).items()
            if value is not None
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkMetadata":
        if not isinstance(data, dict):
            raise ValueError("metadata payload must be a JSON object")
        fields = {}
        for key, value in data.items():
            name = _KEY_TO_FIELD.get(key)
            if name is None:
                continue
            if value is not None and not isinstance(value, str):
                raise ValueError(f"metadata field {key!r} must be a string")
            fields[name] = value
        return cls(**fields)

    @classmethod
    def from_json(cls, payload: str) -> "LinkMetadata":
        try:
            data = json.loads(payload)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"invalid metadata payload: {e}") from e
        return cls.from_dict(data)


def _og_pattern(prop: str) -> Pattern:
    return re.compile(
        r"<meta\s+property=[\"']og:" + re.escape(prop) + r"[\"']\s+content=[\"']([^\"']+)[\"']",
        re.IGNORECASE,
    )


class MetadataExtractor:
    """Regex-only Open Graph extractor tuned for Facebook pages.

    Facebook serves inconsistent, frequently malformed markup to scrapers, so
    every field is located by its own anchored pattern instead of parsing the
    document. A field that does not match is simply left empty.
    """

    _OG_TITLE_RE = _og_pattern("title")
    _OG_DESCRIPTION_RE = _og_pattern("description")
    _OG_IMAGE_RE = _og_pattern("image")
    _OG_URL_RE = _og_pattern("url")
    _OG_SITE_NAME_RE = _og_pattern("site_name")
    _OG_TYPE_RE = _og_pattern("type")
    _TITLE_RE = re.compile(r"<title>([^<]+)</title>", re.IGNORECASE)

    # Post author avatar inside the page's relay JSON, loosest pattern last
    _PROFILE_PICTURE_RES: List[Pattern] = [
        re.compile(r',"actors":\[\{"profile_picture":\{"uri":"([^"]+)"\}'),
        re.compile(r'"actors":\[\{"profile_picture":\{"uri":"([^"]+)"\}'),
        re.compile(r'"profile_picture":\{"uri":"([^"]+)"\}'),
    ]
    _JSON_SLASH_RE = re.compile(r"\\/")
    _JSON_SURROGATE_PAIR_RE = re.compile(
        r"\\u([dD][89abAB][0-9a-fA-F]{2})\\u([dD][c-fC-F][0-9a-fA-F]{2})"
    )
    _JSON_UNICODE_RE = re.compile(r"\\u([0-9a-fA-F]{4})")

    def extract(self, html_content: str, source_url: str) -> Optional[LinkMetadata]:
        if not html_content:
            return None

        fields: Dict[str, Optional[str]] = {}

        title = self._search(self._OG_TITLE_RE, html_content)
        if title:
            fields["title"] = clean_escapes(decode_entities(title))

        description = self._search(self._OG_DESCRIPTION_RE, html_content)
        if description:
            fields["description"] = clean_escapes(decode_entities(description))

        # Image URLs keep their escapes; only entities (&amp;) are decoded
        image = self._search(self._OG_IMAGE_RE, html_content)
        if image:
            fields["image"] = decode_entities(image)

        profile_picture = self._profile_picture(html_content)
        if profile_picture:
            fields["thumbnail"] = profile_picture
            if not fields.get("image"):
                fields["image"] = profile_picture

        url = self._search(self._OG_URL_RE, html_content)
        if url:
            fields["url"] = decode_entities(url)

        site_name = self._search(self._OG_SITE_NAME_RE, html_content)
        if site_name:
            fields["site_name"] = decode_entities(site_name)

        og_type = self._search(self._OG_TYPE_RE, html_content)
        if og_type:
            fields["type"] = og_type

        if not fields.get("title"):
            plain_title = self._search(self._TITLE_RE, html_content)
            if plain_title:
                fields["title"] = clean_escapes(decode_entities(plain_title))

        if not (fields.get("title") or fields.get("description")):
            logger.debug(f"No title or description found for {source_url}")
            return None

        fields["url"] = fields.get("url") or source_url
        return LinkMetadata(**fields)

    def _profile_picture(self, html_content: str) -> Optional[str]:
        for pattern in self._PROFILE_PICTURE_RES:
            raw = self._search(pattern, html_content)
            if raw:
                return self._decode_json_string(raw)
        return None

    def _decode_json_string(self, value: str) -> str:
        value = self._JSON_SLASH_RE.sub("/", value)
        value = self._JSON_SURROGATE_PAIR_RE.sub(self._join_surrogates, value)
        return self._JSON_UNICODE_RE.sub(lambda m: code_point_to_char(int(m.group(1), 16)), value)

    @staticmethod
    def _join_surrogates(match: "re.Match") -> str:
        high = int(match.group(1), 16)
        low = int(match.group(2), 16)
        return chr(0x10000 + ((high - 0xD800) << 10) + (low - 0xDC00))

    @staticmethod
    def _search(pattern: Pattern, text: str) -> Optional[str]:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1)
        return None


_default_extractor = MetadataExtractor()


def extract_metadata(html_content: str, source_url: str) -> Optional[LinkMetadata]:
    return _default_extractor.extract(html_content, source_url)
