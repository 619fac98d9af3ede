#!/usr/bin/env python3
"""RF433 - A virtual 433MHz radio, useful for testing (and for replaying frames).

Each signature has a VirtualChannel, which honours the contract of a radio channel
handle: its callbacks are invoked exactly once, and always asynchronously.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Iterable
from typing import Any, Final

from . import exceptions as exc
from .parsers import bit_array_to_string
from .typing import (
    BitsT,
    PayloadHandlerT,
    RegisterCallbackT,
    RemoverT,
    TxCallbackT,
)

_LOGGER = logging.getLogger(__name__)

DEFAULT_LOG_SIZE: Final[int] = 100

SZ_REGISTER: Final = "register"
SZ_UNREGISTER: Final = "unregister"
SZ_TX: Final = "tx"


class VirtualChannel:
    """A virtual radio channel handle, for a single signature."""

    def __init__(self, radio: VirtualRadio, signature: str) -> None:
        self._radio = radio
        self._loop = radio.loop
        self.signature = signature

        self._handlers: list[PayloadHandlerT] = []
        self._faults: dict[str, deque[BaseException]] = {
            k: deque() for k in (SZ_REGISTER, SZ_UNREGISTER, SZ_TX)
        }

        self.is_registered = False
        self.register_count = 0
        self.unregister_count = 0
        self.tx_log: deque[bytes] = deque([], DEFAULT_LOG_SIZE)  # as sent to RF
        self.rx_log: deque[tuple[int, ...]] = deque([], DEFAULT_LOG_SIZE)

    def __repr__(self) -> str:
        return (
            f"VirtualChannel({self.signature}, registered={self.is_registered}, "
            f"tx={len(self.tx_log)})"
        )

    def add_payload_handler(self, handler: PayloadHandlerT) -> RemoverT:
        def remove_handler() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        if handler not in self._handlers:
            self._handlers.append(handler)
        return remove_handler

    def fail_next(self, method: str, err: BaseException | None = None) -> None:
        """Cause the next call of method (register, unregister, tx) to fail."""
        self._faults[method].append(err or exc.SignalError(f"{method} rejected"))

    def _take_fault(self, method: str) -> BaseException | None:
        faults = self._faults[method]
        return faults.popleft() if faults else None

    def _complete(self, callback: Any, *args: Any) -> None:
        self._loop.call_later(self._radio.delay, callback, *args)

    def register(self, callback: RegisterCallbackT) -> None:
        self.register_count += 1

        if (err := self._take_fault(SZ_REGISTER)) is None:
            self.is_registered = True
        self._complete(callback, err)

    def unregister(self, callback: RegisterCallbackT) -> None:
        self.unregister_count += 1

        if (err := self._take_fault(SZ_UNREGISTER)) is None:
            self.is_registered = False
        self._complete(callback, err)

    def tx(self, frame: bytes, callback: TxCallbackT) -> None:
        if (err := self._take_fault(SZ_TX)) is not None:
            self._complete(callback, err, None)
            return

        self.tx_log.append(bytes(frame))
        self._complete(callback, None, len(frame))

        if self._radio.echo:
            self._loop.call_later(self._radio.delay, self.inject, list(frame))

    def inject(self, bits: BitsT) -> None:
        """Simulate the receipt of a frame (dropped unless registered)."""

        if not self.is_registered:
            _LOGGER.debug(
                f"{self}: not registered, dropped: {bit_array_to_string(bits)}"
            )
            return

        self.rx_log.append(tuple(bits))
        for handler in tuple(self._handlers):
            handler(list(bits))  # each handler has its own copy


class VirtualRadio:
    """A virtual 433MHz radio, with one VirtualChannel per signature.

    Use VirtualRadio.channel as the handle factory of a ChannelRegistry.
    """

    def __init__(
        self,
        echo: bool = False,
        delay: float = 0.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.echo = echo  # sent frames are also received
        self.delay = delay  # secs, before each callback is invoked
        self.loop = loop or asyncio.get_running_loop()

        self._channels: dict[str, VirtualChannel] = {}

    def __repr__(self) -> str:
        return f"VirtualRadio(signatures={list(self._channels)})"

    @property
    def channels(self) -> dict[str, VirtualChannel]:
        return self._channels

    def channel(self, signature: str) -> VirtualChannel:
        """Return the channel of a signature, creating it if required."""

        if (channel := self._channels.get(signature)) is None:
            channel = self._channels[signature] = VirtualChannel(self, signature)
        return channel

    def inject(self, signature: str, bits: BitsT) -> None:
        """Simulate the receipt of a frame by the channel of a signature."""
        self.channel(signature).inject(bits)

    def inject_many(self, signature: str, frames: Iterable[BitsT]) -> None:
        for bits in frames:
            self.inject(signature, bits)
