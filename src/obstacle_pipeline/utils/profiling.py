"""Performance Profiling Utilities for the Obstacle Pipeline.

The smoothing stage runs once per sensor frame under a soft real-time budget,
so per-frame timing is worth keeping an eye on. This module provides:
- A profiler collecting timings per named operation
- A timing decorator that logs the duration of each call
"""

import functools
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class TimingResult:
    """Container for timing results."""

    name: str
    total_time: float
    call_count: int
    times: List[float] = field(default_factory=list)

    @property
    def avg_time(self) -> float:
        """Average time per call."""
        return self.total_time / self.call_count if self.call_count > 0 else 0

    @property
    def min_time(self) -> float:
        return min(self.times) if self.times else 0

    @property
    def max_time(self) -> float:
        return max(self.times) if self.times else 0

    @property
    def std_time(self) -> float:
        """Standard deviation of times."""
        return float(np.std(self.times)) if len(self.times) > 1 else 0

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "total_time": self.total_time,
            "call_count": self.call_count,
            "avg_time": self.avg_time,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "std_time": self.std_time,
        }


class Profiler:
    """Profiler for tracking timing across multiple operations.

    Example:
        >>> profiler = Profiler()
        >>> for frame in frames:
        ...     with profiler.profile("update_obstacles"):
        ...         aggregator.update_obstacles(frame)
        >>> profiler.get_timing("update_obstacles").avg_time
    """

    def __init__(self):
        self._timings: Dict[str, TimingResult] = {}

    @contextmanager
    def profile(self, name: str):
        """Context manager for profiling a code block.

        Args:
            name: Name of the operation being profiled.
        """
        start_time = time.perf_counter()

        try:
            yield
        finally:
            elapsed = time.perf_counter() - start_time

            if name not in self._timings:
                self._timings[name] = TimingResult(name=name, total_time=0, call_count=0)

            self._timings[name].total_time += elapsed
            self._timings[name].call_count += 1
            self._timings[name].times.append(elapsed)

    def get_timing(self, name: str) -> Optional[TimingResult]:
        """Get timing result for an operation."""
        return self._timings.get(name)

    def get_all_timings(self) -> Dict[str, TimingResult]:
        return self._timings.copy()

    def reset(self) -> None:
        self._timings.clear()

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Get summary of all timings."""
        return {name: result.to_dict() for name, result in self._timings.items()}


def timed(name: Optional[str] = None, log_level: int = logging.DEBUG):
    """Decorator for timing function execution.

    Args:
        name: Optional name for the operation (defaults to function name).
        log_level: Logging level for timing output.

    Example:
        >>> @timed()
        ... def my_function():
        ...     pass
    """

    def decorator(func: Callable) -> Callable:
        op_name = name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed = time.perf_counter() - start_time
            logger.log(log_level, f"{op_name} took {elapsed * 1000:.2f}ms")
            return result

        return wrapper

    return decorator
