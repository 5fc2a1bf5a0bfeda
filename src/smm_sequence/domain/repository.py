"""SequenceAllocator Protocol — one strictly increasing integer per counter."""

from typing import Protocol

from src.smm_common.enums import CounterName


class SequenceAllocatorProtocol(Protocol):
    async def next_value(self, counter: CounterName) -> int:
        """Return the next value for `counter`; the first call ever returns 1.

        No two calls, concurrent or sequential, may return the same value for
        the same counter. Failures propagate unmodified.
        """
        ...
