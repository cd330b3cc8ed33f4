"""Timing helper for backend calls.

Usage:
    async with TimingLogger("predict", logger, symbol="SPY"):
        response = await client.post(...)
"""

import logging
import time
from typing import Any


class TimingLogger:
    """Async context manager that logs how long a block took.

    Lines carry a ``[TIMING]`` prefix so they are easy to grep:

        [TIMING] predict: 245.10ms, symbol=SPY
    """

    def __init__(
        self,
        name: str,
        logger: logging.Logger,
        log_level: int = logging.INFO,
        **extra_data: Any
    ):
        self.name = name
        self.logger = logger
        self.log_level = log_level
        self.extra_data = extra_data
        self.start: float = 0.0
        self.elapsed_ms: float = 0.0

    async def __aenter__(self) -> "TimingLogger":
        self.start = time.perf_counter()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed_ms = (time.perf_counter() - self.start) * 1000
        extra_str = ""
        if self.extra_data:
            extra_str = ", " + ", ".join(f"{k}={v}" for k, v in self.extra_data.items())
        message = f"[TIMING] {self.name}: {self.elapsed_ms:.2f}ms{extra_str}"
        if exc_type is not None:
            self.logger.warning(message + f" ({exc_type.__name__})")
        else:
            self.logger.log(self.log_level, message)
        return False


__all__ = ["TimingLogger"]
