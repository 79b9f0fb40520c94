"""Configuration module for the FoodShare search core."""

from .search_config import (
    SEARCH_CONFIG,
    SearchSettings,
    RateLimitConfig,
    DebounceConfig,
    VoiceConfig,
    HistoryConfig,
    ChannelConfig,
    configure_logging,
    get_search_settings,
)

__all__ = [
    'SEARCH_CONFIG',
    'SearchSettings',
    'RateLimitConfig',
    'DebounceConfig',
    'VoiceConfig',
    'HistoryConfig',
    'ChannelConfig',
    'configure_logging',
    'get_search_settings',
]
