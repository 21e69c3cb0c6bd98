"""Aggregated config data types."""

from .duration import parse_duration
from .memory_size import MemorySize

__all__ = [
    "MemorySize",
    "parse_duration",
]
