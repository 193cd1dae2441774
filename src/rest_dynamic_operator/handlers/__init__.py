"""External resource backends driven by the controller."""

from .base import BaseHandler, ExternalResourceBackend, HandlerOptions
from .chart import ChartHandler
from .rest import RestHandler

__all__ = [
    "BaseHandler",
    "ExternalResourceBackend",
    "HandlerOptions",
    "ChartHandler",
    "RestHandler",
]
