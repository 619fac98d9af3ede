#!/usr/bin/env python3
"""RF433 - Debounce filters (suppression of repeated frames)."""

from __future__ import annotations

import asyncio
import logging

from .parsers import bit_array_to_string
from .typing import BitsT

_LOGGER = logging.getLogger(__name__)


class DebounceFilter:
    """Suppress any frame that is identical to one seen in the last debounce_time ms.

    Each distinct frame gets a fixed cool-down, starting when it was first seen: a
    repeat sighting within the cool-down is dropped, and does not extend it.
    """

    def __init__(
        self, debounce_time: int, loop: asyncio.AbstractEventLoop | None = None
    ) -> None:
        self._debounce_time = debounce_time  # ms
        self._loop = loop or asyncio.get_running_loop()

        self._buffer: dict[str, asyncio.TimerHandle] = {}

    def __repr__(self) -> str:
        return f"DebounceFilter({self._debounce_time} ms, len(buffer)={len(self)})"

    def __len__(self) -> int:
        return len(self._buffer)

    def __contains__(self, bits: object) -> bool:
        if isinstance(bits, str):
            return bits in self._buffer
        return bit_array_to_string(bits) in self._buffer  # type: ignore[arg-type]

    @property
    def debounce_time(self) -> int:
        return self._debounce_time

    def is_suppressed(self, payload: BitsT) -> bool:
        """Return True if the frame is a repeat (and so is to be dropped)."""

        key = bit_array_to_string(payload)
        if key in self._buffer:
            return True

        self._buffer[key] = self._loop.call_later(
            self._debounce_time / 1000, self._buffer.pop, key, None
        )
        return False

    def clear(self) -> None:
        """Cancel all pending expiries, and forget every frame."""

        for handle in self._buffer.values():
            handle.cancel()
        self._buffer.clear()


class ManualDebounce:
    """A time-boxed, suppress-everything flag (re-arming restarts the timer)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

        self._flag = False
        self._timer: asyncio.TimerHandle | None = None

    def __bool__(self) -> bool:
        return self._flag

    def __repr__(self) -> str:
        return f"ManualDebounce(active={self._flag})"

    def arm(self, timeout: int) -> None:
        """Suppress everything for the next timeout ms."""

        self._flag = True
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(timeout / 1000, self._expire)

    def _expire(self) -> None:
        self._flag = False
        self._timer = None

    def cancel(self) -> None:
        """Lift the suppression now."""

        if self._timer is not None:
            self._timer.cancel()
        self._expire()
