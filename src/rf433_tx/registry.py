#!/usr/bin/env python3
"""RF433 - The registry of shared radio channels (one per signature).

Many Signals may share a signature, but there is only ever one radio channel handle
per signature, and it is registered with the radio only while any Signal is bound.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any, Final

from . import exceptions as exc
from .const import MAX_LISTENERS
from .debounce import ManualDebounce
from .logger import FRAME_LOGGER
from .parsers import bit_array_to_string
from .typing import BitsT, HandleFactoryT, RadioChannelT, RemoverT

if TYPE_CHECKING:
    from .signal import Signal

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_LOG_FRAMES: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


async def call_handle(
    loop: asyncio.AbstractEventLoop, fnc: Callable[..., None], *args: Any
) -> Any:
    """Invoke a one-shot handle method, and await its callback.

    The callback may be invoked from another thread, and is marshalled onto the loop.
    Any error is raised as-is if an Exception, otherwise wrapped as a SignalError.
    """

    fut: asyncio.Future[Any] = loop.create_future()

    def settle(err: Any, result: Any) -> None:
        if fut.cancelled():  # e.g. the caller timed out
            return
        if fut.done():  # should be invoked exactly once
            _LOGGER.warning(f"{fnc!r}: callback invoked more than once (ignored)")
            return
        if not err:
            fut.set_result(result)
        elif isinstance(err, Exception):
            fut.set_exception(err)
        else:
            fut.set_exception(exc.SignalError(str(err)))

    def callback(err: Any = None, result: Any = None) -> None:
        loop.call_soon_threadsafe(settle, err, result)

    fnc(*args, callback)
    return await fut


def _has_failed(fut: asyncio.Future[Any]) -> bool:
    return fut.done() and (fut.cancelled() or fut.exception() is not None)


class SharedChannel:
    """The state shared by all the Signals of a signature.

    Owns the radio channel handle, the set of bound Signals, the pending
    (un)registration, and the manual debounce that applies to all listeners.
    """

    def __init__(
        self,
        signature: str,
        handle: RadioChannelT,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.signature = signature
        self.handle = handle
        self._loop = loop

        self.bound: set[Signal] = set()
        self.registration: asyncio.Future[None] | None = None
        self.unregistration: asyncio.Future[None] | None = None

        self.manual_debounce = ManualDebounce(loop)

        self._subscribers: list[Signal] = []
        self._remove_handler = handle.add_payload_handler(self._payload_received)

    def __repr__(self) -> str:
        return (
            f"SharedChannel({self.signature}, bound={len(self.bound)}, "
            f"subscribers={len(self._subscribers)})"
        )

    @property
    def subscribers(self) -> tuple[Signal, ...]:
        return tuple(self._subscribers)

    def attach(self, signal: Signal) -> RemoverT:
        """Subscribe a Signal to the frames (and sends) of this channel.

        Returns a callback that can be used to subsequently detach the Signal.
        """

        def detach() -> None:
            if signal in self._subscribers:
                self._subscribers.remove(signal)

        if signal not in self._subscribers:
            self._subscribers.append(signal)
            if len(self._subscribers) > MAX_LISTENERS:
                _LOGGER.warning(
                    f"[Signal {self.signature}] has {len(self._subscribers)} "
                    "subscribers, is there a leak?"
                )

        return detach

    def _payload_received(self, bits: BitsT) -> None:
        """Called by the radio handle (from any thread) when a frame is received."""
        self._loop.call_soon_threadsafe(self._dispatch_payload, tuple(bits))

    def _dispatch_payload(self, bits: tuple[int, ...]) -> None:
        if _DBG_FORCE_LOG_FRAMES:
            _LOGGER.warning(f"[Signal {self.signature}] payload: {bits}")

        FRAME_LOGGER.info(
            bit_array_to_string(bits), extra={"signature": self.signature}
        )

        for signal in tuple(self._subscribers):  # a subscriber may detach itself
            signal._payload_received(bits)

    def broadcast_send(self, payload: list[int]) -> None:
        """Inform every subscriber of the signature that a payload has been sent."""

        for signal in tuple(self._subscribers):
            signal._payload_sent(list(payload))

    def close(self) -> None:
        """Stop receiving frames from the handle."""

        self._remove_handler()
        self.manual_debounce.cancel()


class ChannelRegistry:
    """A registry of shared radio channels, keyed by signature.

    Its lifetime is that of the application (or of the test): handles are created
    lazily, on first reference, and are discarded only when the registry is closed.
    """

    def __init__(
        self,
        handle_factory: HandleFactoryT,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._handle_factory = handle_factory
        self._loop = loop or asyncio.get_running_loop()

        self._channels: dict[str, SharedChannel] = {}

    def __repr__(self) -> str:
        return f"ChannelRegistry(signatures={list(self._channels)})"

    def __contains__(self, signature: object) -> bool:
        return signature in self._channels

    def __iter__(self) -> Iterator[str]:
        return iter(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def signatures(self) -> tuple[str, ...]:
        return tuple(self._channels)

    def get_or_create(self, signature: str) -> SharedChannel:
        """Return the shared channel of a signature, creating it if required."""

        if (channel := self._channels.get(signature)) is None:
            _LOGGER.debug(f"[Signal {signature}] creating shared channel")
            channel = SharedChannel(
                signature, self._handle_factory(signature), self._loop
            )
            self._channels[signature] = channel
        return channel

    def bind(self, signature: str, subscriber: Signal) -> asyncio.Future[None]:
        """Bind a subscriber to the signature, registering with the radio if required.

        Only the first subscriber (or the first after a failed registration) causes
        a registration: all others share its (pending or resolved) outcome.

        Will raise RegistrationFailed (via the future) if the radio rejects it.
        """

        channel = self.get_or_create(signature)

        was_empty = not channel.bound
        channel.bound.add(subscriber)

        if (
            was_empty
            or channel.registration is None
            or _has_failed(channel.registration)
        ):
            channel.registration = self._loop.create_task(
                self._register(channel, channel.unregistration),
                name=f"register({signature})",
            )

        return channel.registration

    def unbind(self, signature: str, subscriber: Signal) -> asyncio.Future[None] | None:
        """Unbind a subscriber, unregistering from the radio if it was the last one.

        Returns the pending unregistration, or None if there is nothing to release.
        Unbinding a subscriber that is not bound is harmless.
        """

        if (channel := self._channels.get(signature)) is None:
            return None

        if subscriber not in channel.bound:
            return None
        channel.bound.discard(subscriber)

        if channel.bound:  # there are other subscribers
            return None

        registration, channel.registration = channel.registration, None
        if registration is None:
            return None

        task = self._loop.create_task(
            self._unregister(channel, registration), name=f"unregister({signature})"
        )
        task.add_done_callback(
            lambda t: self._unregistration_done(channel, t)  # type: ignore[arg-type]
        )
        channel.unregistration = task
        return task

    async def _register(
        self,
        channel: SharedChannel,
        unregistration: asyncio.Future[None] | None,
    ) -> None:
        """Register the signature with the radio, after any pending unregistration."""

        if unregistration is not None:
            await asyncio.wait([unregistration])
            if not unregistration.cancelled() and unregistration.exception():
                _LOGGER.warning(
                    f"[Signal {channel.signature}] registering regardless of the "
                    f"failed unregistration: {unregistration.exception()}"
                )

        _LOGGER.info(f"[Signal {channel.signature}] registering signal")

        try:
            await call_handle(self._loop, channel.handle.register)
        except Exception as err:  # the radio's errors are of any type
            _LOGGER.warning(f"[Signal {channel.signature}] register error: {err}")
            raise exc.RegistrationFailed(
                f"[Signal {channel.signature}] registration failed: {err}"
            ) from err

        _LOGGER.debug(f"[Signal {channel.signature}] registered signal")

    async def _unregister(
        self, channel: SharedChannel, registration: asyncio.Future[None]
    ) -> None:
        """Unregister the signature from the radio, after any pending registration."""

        await asyncio.wait([registration])
        if _has_failed(registration):  # then there is nothing to release
            _LOGGER.debug(f"[Signal {channel.signature}] not registered, so skipped")
            return

        _LOGGER.info(f"[Signal {channel.signature}] unregistering signal")

        try:
            await call_handle(self._loop, channel.handle.unregister)
        except Exception as err:  # the radio's errors are of any type
            _LOGGER.warning(f"[Signal {channel.signature}] unregister error: {err}")
            raise exc.UnregistrationFailed(
                f"[Signal {channel.signature}] unregistration failed: {err}"
            ) from err

        _LOGGER.debug(f"[Signal {channel.signature}] unregistered signal")

    @staticmethod
    def _unregistration_done(channel: SharedChannel, task: asyncio.Task[None]) -> None:
        if channel.unregistration is task:
            channel.unregistration = None

    async def close(self) -> None:
        """Unbind every subscriber, stop receiving frames, and discard every channel.

        A Signal created afterwards gets a fresh channel (the registry is reusable).
        """

        pending = [
            fut
            for channel in self._channels.values()
            for subscriber in tuple(channel.bound)
            if (fut := self.unbind(channel.signature, subscriber)) is not None
        ]
        pending += [  # incl. those begun before close() was called
            c.unregistration
            for c in self._channels.values()
            if c.unregistration is not None and c.unregistration not in pending
        ]

        for result in await asyncio.gather(*pending, return_exceptions=True):
            if isinstance(result, Exception):
                _LOGGER.warning(f"Failed to release a signal: {result}")

        for channel in self._channels.values():
            channel.close()
        self._channels.clear()
