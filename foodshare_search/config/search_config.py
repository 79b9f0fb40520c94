"""Search core configuration settings."""

from dataclasses import dataclass
from typing import Optional
import logging
import os

from dotenv import load_dotenv

load_dotenv()


@dataclass
class RateLimitConfig:
    """Outbound search rate limiting."""
    max_requests: int = 30
    window_seconds: float = 60.0


@dataclass
class DebounceConfig:
    """Typing debounce."""
    delay_ms: int = 300


@dataclass
class VoiceConfig:
    """Voice capture behavior."""
    timeout_seconds: float = 10.0


@dataclass
class HistoryConfig:
    """Search history persistence."""
    max_recent: int = 10
    max_saved: int = 20
    storage_dir: str = "./search_history"


@dataclass
class ChannelConfig:
    """Backend channel behavior."""
    page_size: int = 100
    timeout_seconds: float = 15.0
    fallback_max_retries: int = 2
    fallback_backoff_seconds: float = 0.5
    circuit_breaker_threshold: int = 5
    circuit_breaker_reset_seconds: float = 30.0
    search_api_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_anon_key: Optional[str] = None


@dataclass
class SearchSettings:
    """Main search core settings."""
    log_level: str = "INFO"
    rate_limiting: RateLimitConfig = None
    debounce: DebounceConfig = None
    voice: VoiceConfig = None
    history: HistoryConfig = None
    channels: ChannelConfig = None

    def __post_init__(self):
        """Initialize nested configs if not provided."""
        if self.rate_limiting is None:
            self.rate_limiting = RateLimitConfig()
        if self.debounce is None:
            self.debounce = DebounceConfig()
        if self.voice is None:
            self.voice = VoiceConfig()
        if self.history is None:
            self.history = HistoryConfig()
        if self.channels is None:
            self.channels = ChannelConfig()


# Default search configuration
SEARCH_CONFIG = {
    "log_level": os.getenv("SEARCH_LOG_LEVEL", "INFO"),
    "rate_limiting": {
        "max_requests": int(os.getenv("SEARCH_RATE_LIMIT_MAX_REQUESTS", "30")),
        "window_seconds": float(os.getenv("SEARCH_RATE_LIMIT_WINDOW_SECONDS", "60")),
    },
    "debounce": {
        "delay_ms": int(os.getenv("SEARCH_DEBOUNCE_MS", "300")),
    },
    "voice": {
        "timeout_seconds": float(os.getenv("VOICE_TIMEOUT_SECONDS", "10")),
    },
    "history": {
        "max_recent": int(os.getenv("MAX_RECENT_SEARCHES", "10")),
        "max_saved": int(os.getenv("MAX_SAVED_SEARCHES", "20")),
        "storage_dir": os.getenv("SEARCH_HISTORY_DIR", "./search_history"),
    },
    "channels": {
        "page_size": int(os.getenv("SEARCH_PAGE_SIZE", "100")),
        "timeout_seconds": float(os.getenv("SEARCH_CHANNEL_TIMEOUT_SECONDS", "15")),
        "fallback_max_retries": int(os.getenv("FALLBACK_MAX_RETRIES", "2")),
        "fallback_backoff_seconds": float(os.getenv("FALLBACK_BACKOFF_SECONDS", "0.5")),
        "circuit_breaker_threshold": int(os.getenv("CIRCUIT_BREAKER_THRESHOLD", "5")),
        "circuit_breaker_reset_seconds": float(os.getenv("CIRCUIT_BREAKER_RESET_SECONDS", "30")),
        "search_api_url": os.getenv("SEARCH_API_URL"),
        "supabase_url": os.getenv("SUPABASE_URL"),
        "supabase_anon_key": os.getenv("SUPABASE_ANON_KEY"),
    },
}


def get_search_settings() -> SearchSettings:
    """Get search settings from configuration."""
    return SearchSettings(
        log_level=SEARCH_CONFIG["log_level"],
        rate_limiting=RateLimitConfig(**SEARCH_CONFIG["rate_limiting"]),
        debounce=DebounceConfig(**SEARCH_CONFIG["debounce"]),
        voice=VoiceConfig(**SEARCH_CONFIG["voice"]),
        history=HistoryConfig(**SEARCH_CONFIG["history"]),
        channels=ChannelConfig(**SEARCH_CONFIG["channels"]),
    )


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for processes embedding the search core."""
    logging.basicConfig(
        level=getattr(logging, (level or SEARCH_CONFIG["log_level"]).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
