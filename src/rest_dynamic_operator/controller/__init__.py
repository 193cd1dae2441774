"""Reconciliation control loop."""

from .controller import Controller, ControllerOptions
from .events import Event, EventType
from .queue import RateLimitingQueue
from .ratelimit import (
    BucketRateLimiter,
    ItemExponentialFailureRateLimiter,
    MaxOfRateLimiter,
    default_controller_rate_limiter,
)

__all__ = [
    "Controller",
    "ControllerOptions",
    "Event",
    "EventType",
    "RateLimitingQueue",
    "BucketRateLimiter",
    "ItemExponentialFailureRateLimiter",
    "MaxOfRateLimiter",
    "default_controller_rate_limiter",
]
