""" backoff.py

Reconnect pacing. Hands out the number of seconds to wait before the next connection attempt.
The delay grows on every failed attempt until it reaches the cap, and drops back to the initial value as soon as the connection proves healthy.
"""
import logging

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DELAY_SECONDS = 1
DEFAULT_MAX_DELAY_SECONDS = 60
DEFAULT_FACTOR = 2


class BackoffPolicy:
    """Capped exponential backoff, in whole seconds.

    next() returns the current delay and then advances it. The sequence is non-decreasing and never exceeds maximum.
    reset() puts it back to initial, so the very next call to next() returns initial again.

    Not thread safe. The relay task is the only owner.
    """

    def __init__(self, initial: int = DEFAULT_INITIAL_DELAY_SECONDS, maximum: int = DEFAULT_MAX_DELAY_SECONDS, factor: int = DEFAULT_FACTOR):
        if initial < 1:
            raise ValueError(f"initial delay must be at least 1 second, got {initial}")
        if maximum < initial:
            raise ValueError(f"maximum delay ({maximum}) is smaller than the initial delay ({initial})")
        if factor < 1:
            raise ValueError(f"backoff factor must be at least 1, got {factor}")
        self._initial: int = initial
        self._maximum: int = maximum
        self._factor: int = factor
        self._delay: int = initial

    @property
    def initial(self) -> int:
        return self._initial

    @property
    def maximum(self) -> int:
        return self._maximum

    @property
    def current(self) -> int:
        return self._delay

    def reset(self):
        if self._delay != self._initial:
            logger.debug("Resetting reconnect delay from %d to %d seconds", self._delay, self._initial)
        self._delay = self._initial

    def next(self) -> int:
        delay = self._delay
        # saturate instead of growing forever, the cap is the ceiling for every later call too.
        self._delay = min(self._delay * self._factor, self._maximum)
        return delay
