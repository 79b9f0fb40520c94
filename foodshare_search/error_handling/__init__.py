"""
Error handling module for the search core.

Provides the error taxonomy, retry logic and the primary-channel circuit breaker.
"""

from .circuit_breaker import CircuitBreaker, CircuitState
from .error_handler import ErrorHandler, RetryConfig
from .errors import (
    CircuitOpen,
    PermissionDenied,
    PersistenceFailed,
    RateLimited,
    SearchCoreError,
    SearchFailed,
    VoiceRecognitionFailed,
)

__all__ = [
    'CircuitBreaker',
    'CircuitState',
    'ErrorHandler',
    'RetryConfig',
    'CircuitOpen',
    'PermissionDenied',
    'PersistenceFailed',
    'RateLimited',
    'SearchCoreError',
    'SearchFailed',
    'VoiceRecognitionFailed',
]
