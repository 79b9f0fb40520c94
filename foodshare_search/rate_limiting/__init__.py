"""Rate limiting for outbound searches."""

from .rate_limiter import RateLimiter

__all__ = ['RateLimiter']
