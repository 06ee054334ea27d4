"""Utility helpers."""

from pulse_sync.utils.async_utils import run_async
from pulse_sync.utils.clock import Clock, FixedClock, SystemClock

__all__ = ["Clock", "FixedClock", "SystemClock", "run_async"]
