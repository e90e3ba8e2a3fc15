"""
Sequential Scheduling Module

This module provides the single scheduling primitive used for every network
call: run one operation, then wait a fixed delay before the next one. Requests
are never issued in parallel.
"""

import logging
import time
from typing import Any, Callable


class TaskSequencer:
    """Runs operations one at a time with a fixed pause after each"""

    def __init__(self, delay_ms: float, sleep: Callable[[float], Any] = time.sleep):
        """
        Initialize sequencer.

        Args:
            delay_ms: Pause after every operation, in milliseconds
            sleep: Function used to wait (seconds); replaced in tests
        """
        if delay_ms < 0:
            raise ValueError(f"delay_ms must not be negative, got {delay_ms}")
        self.delay_ms = delay_ms
        self._sleep = sleep
        self.calls = 0
        self.logger = logging.getLogger(__name__)

    def run(self, operation: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run an operation and then wait, whether it returned or raised.

        Returns:
            Whatever the operation returned; its exception is re-raised after the delay
        """
        self.calls += 1
        try:
            return operation(*args, **kwargs)
        finally:
            self.wait()

    def wait(self):
        if self.delay_ms:
            self.logger.debug(f"Sleeping {self.delay_ms}ms before next request")
            self._sleep(self.delay_ms / 1000.0)
