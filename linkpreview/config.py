from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .cache import DEFAULT_KEY_PREFIX, DEFAULT_TTL_SEC
from .embed import FACEBOOK_BLUE
from .net.fetcher import (
    DEFAULT_ACCEPT_LANGUAGE,
    DEFAULT_DESKTOP_USER_AGENT,
    DEFAULT_MOBILE_USER_AGENT,
    DEFAULT_TIMEOUT_MS,
)


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


@dataclass
class FetchConfig:
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    desktop_user_agent: str = DEFAULT_DESKTOP_USER_AGENT
    mobile_user_agent: str = DEFAULT_MOBILE_USER_AGENT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    blocked_statuses: List[int] = field(default_factory=lambda: [400, 401, 403])
    http2: bool = True

    def __post_init__(self):
        if self.timeout_ms < 100:
            raise ValueError(f"fetch.timeout_ms too low: {self.timeout_ms}")
        if not self.desktop_user_agent or not self.mobile_user_agent:
            raise ValueError("fetch user agents cannot be empty")
        for status in self.blocked_statuses:
            if not isinstance(status, int) or not 100 <= status <= 599:
                raise ValueError(f"fetch.blocked_statuses contains invalid status: {status!r}")


@dataclass
class CacheConfig:
    ttl_sec: int = DEFAULT_TTL_SEC
    key_prefix: str = DEFAULT_KEY_PREFIX

    def __post_init__(self):
        if self.ttl_sec < 1:
            raise ValueError(f"cache.ttl_sec must be >= 1, got {self.ttl_sec}")


@dataclass
class RateLimitConfig:
    max_requests: int = 10
    window_sec: float = 60.0

    def __post_init__(self):
        if self.max_requests < 1:
            raise ValueError(f"rate_limit.max_requests must be >= 1, got {self.max_requests}")
        if self.window_sec <= 0:
            raise ValueError(f"rate_limit.window_sec must be > 0, got {self.window_sec}")


@dataclass
class BotConfig:
    # Delay before native embeds are suppressed
    suppress_delay_ms: int = 600
    embed_color: int = FACEBOOK_BLUE

    def __post_init__(self):
        if self.suppress_delay_ms < 0:
            raise ValueError("bot.suppress_delay_ms must be >= 0")
        if not 0 <= self.embed_color <= 0xFFFFFF:
            raise ValueError(f"bot.embed_color out of range: {self.embed_color}")


@dataclass
class LogsConfig:
    log_level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class PreviewConfig:
    fetch: FetchConfig = field(default_factory=FetchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    bot: BotConfig = field(default_factory=BotConfig)
    logs: LogsConfig = field(default_factory=LogsConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PreviewConfig':
        try:
            return cls(
                fetch=FetchConfig(**get_section(data, 'fetch')),
                cache=CacheConfig(**get_section(data, 'cache')),
                rate_limit=RateLimitConfig(**get_section(data, 'rate_limit')),
                bot=BotConfig(**get_section(data, 'bot')),
                logs=LogsConfig(**get_section(data, 'logs')),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_yaml(cls, config_path: str) -> 'PreviewConfig':
        return cls.from_dict(load_yaml_config(config_path))


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary."""
    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return data


def get_section(config: Dict[str, Any], section: str) -> Dict[str, Any]:
    """Return a configuration section, ensuring it is a mapping."""
    value = config.get(section, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{section}' must be a mapping.")
    return value
