"""
Rejection of overlapping calls.

Callers are expected to wait for one decision or send to settle before
issuing the next. A double tap that slips through is rejected here instead
of starting a second read-modify-write cycle.
"""

from contextlib import asynccontextmanager
from typing import Hashable, Set

from .errors import OperationInFlightError
from .logger import get_logger


class SerialGuard:
    """Allows at most one pending operation per key."""

    def __init__(self, name: str):
        self.name = name
        self._pending: Set[Hashable] = set()

    @asynccontextmanager
    async def hold(self, key: Hashable):
        if key in self._pending:
            get_logger().record_rejection(OperationInFlightError.__name__)
            raise OperationInFlightError(f"{self.name}: an operation for {key} is still pending")
        self._pending.add(key)
        try:
            yield
        finally:
            self._pending.discard(key)
