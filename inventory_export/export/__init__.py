"""
Export dispatch, cell formatting, serializers and the retry queue.
"""

from .exporter import Exporter
from .retry_queue import RetryQueue
from .serializers import CsvSerializer, JsonSerializer, Serializer

__all__ = [
    "Exporter",
    "RetryQueue",
    "Serializer",
    "CsvSerializer",
    "JsonSerializer",
]
