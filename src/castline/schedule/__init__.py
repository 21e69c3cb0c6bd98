"""Scheduling of periodic feed checks and queue dispatch ticks."""

from .scheduler import FeedScheduler

__all__ = ["FeedScheduler"]
