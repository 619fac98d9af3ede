#!/usr/bin/env python3
"""RF433 - The Signal, a logical subscriber to a (shared) radio channel.

Architecture: driver -> Signal (parse, debounce) -> SharedChannel -> radio handle
- receive records via Signal.add_listener(SignalEvent.DATA, callback)
- send frames via awaitable Signal.send(payload)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Final

from . import exceptions as exc
from .const import (
    DEFAULT_DEBOUNCE_TIME,
    SZ_DEBOUNCE_TIME,
    SZ_ID,
    SZ_PARSER,
    SZ_SIGNATURE,
    SignalEvent,
)
from .debounce import DebounceFilter, ManualDebounce
from .parsers import bit_array_to_string, bits_to_frame, default_parser
from .registry import call_handle
from .schemas import SCH_SIGNAL_CONFIG, parser_from_config, validate_config

if TYPE_CHECKING:
    from .registry import ChannelRegistry, SharedChannel
    from .typing import (
        BitsT,
        ListenerT,
        ParserT,
        PayloadT,
        RecordT,
        RegisterCallbackT,
        RemoverT,
        TxCallbackT,
    )

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_LOG_PAYLOADS: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


def _null_callback(*args: Any) -> None:
    pass


class Signal:
    """A logical subscriber to the radio channel of a signature.

    Any number of Signals may share a signature (and so, a radio channel). Each one
    parses the frames with its own parser, and has its own debounce filter.
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        signature: str,
        parser: ParserT | None = None,
        debounce_time: int = DEFAULT_DEBOUNCE_TIME,
    ) -> None:
        self._registry = registry
        self._loop = registry.loop

        self._signature = signature
        self._parser: ParserT = parser or default_parser
        self._debounce_time = int(debounce_time or 0)  # ms

        self._debounce: DebounceFilter | None = None
        if self._debounce_time > 0:
            self._debounce = DebounceFilter(self._debounce_time, loop=self._loop)
        self._manual_debounce = ManualDebounce(loop=self._loop)

        self._listeners: dict[SignalEvent, list[ListenerT]] = {e: [] for e in SignalEvent}

        self._channel: SharedChannel = registry.get_or_create(signature)
        self._detach: RemoverT = self._channel.attach(self)

    @classmethod
    def from_config(cls, registry: ChannelRegistry, config: dict[str, Any]) -> Signal:
        """Create a Signal from a (to be validated) config dict.

        Will raise ConfigInvalid if the config is not valid.
        """

        config = validate_config(SCH_SIGNAL_CONFIG, config)
        return cls(
            registry,
            config[SZ_SIGNATURE],
            parser=parser_from_config(config.get(SZ_PARSER)),
            debounce_time=config[SZ_DEBOUNCE_TIME],
        )

    def __repr__(self) -> str:
        return (
            f"Signal({self._signature}, parser={getattr(self._parser, '__name__', '?')}"
            f", debounce_time={self._debounce_time})"
        )

    def __str__(self) -> str:
        return f"[Signal {self._signature}]"

    @property
    def signature(self) -> str:
        return self._signature

    @property
    def parser(self) -> ParserT:
        return self._parser

    @property
    def debounce_time(self) -> int:
        return self._debounce_time

    @property
    def is_bound(self) -> bool:
        return self in self._channel.bound

    def add_listener(self, event: SignalEvent | str, callback: ListenerT) -> RemoverT:
        """Add a listener for an event (payload, data, payload_send, error).

        Returns a callback that can be used to subsequently remove the listener.
        """

        listeners = self._listeners[SignalEvent(event)]

        def remove_listener() -> None:
            if callback in listeners:
                listeners.remove(callback)

        if callback not in listeners:
            listeners.append(callback)

        return remove_listener

    def _emit(self, event: SignalEvent, *args: Any) -> None:
        """Invoke the listeners of an event, in the order they were added."""

        for callback in tuple(self._listeners[event]):
            try:
                callback(*args)
            except Exception:  # logged, and the next listener is called
                _LOGGER.exception(f"{self}: listener {callback!r} raised on: {event}")

    def register(
        self, callback: RegisterCallbackT | None = None
    ) -> asyncio.Future[bool]:
        """Bind this Signal to its radio channel.

        Invokes callback(err) on failure, or callback(None, True) on success, and
        returns a future with the same outcome. Concurrent registrations of Signals
        that share a signature collapse into the one registration with the radio.
        """

        result: asyncio.Future[bool] = self._loop.create_future()

        registration = self._registry.bind(self._signature, self)
        registration.add_done_callback(
            lambda fut: self._settle(result, fut, callback, True)
        )
        return result

    def unregister(
        self, callback: RegisterCallbackT | None = None
    ) -> asyncio.Future[None]:
        """Release the binding of this Signal to its radio channel.

        The radio channel is unregistered only when its last Signal is released.
        """

        result: asyncio.Future[None] = self._loop.create_future()

        if (unregistration := self._registry.unbind(self._signature, self)) is None:
            result.set_result(None)
            self._invoke(callback, None)
        else:
            unregistration.add_done_callback(
                lambda fut: self._settle(result, fut, callback)
            )
        return result

    def _settle(
        self,
        result: asyncio.Future[Any],
        fut: asyncio.Future[None],
        callback: RegisterCallbackT | None,
        *args: Any,
    ) -> None:
        """Settle result with the outcome of a (un)registration, then tell callback.

        On success, result is set to args[0] (if any) and callback(None, *args) is
        invoked. On failure, the error is also sent to the error listeners.
        """

        if fut.cancelled():
            result.cancel()
            return

        if (err := fut.exception()) is None:
            result.set_result(args[0] if args else None)
            self._invoke(callback, None, *args)
            return

        result.set_exception(err)
        if callable(callback):  # the caller may not await the result
            result.exception()

        self._emit(SignalEvent.ERROR, err)
        self._invoke(callback, err)

    def _invoke(self, callback: RegisterCallbackT | None, *args: Any) -> None:
        if not callable(callback):
            return
        try:
            callback(*args)
        except Exception:  # logged, the result is already settled
            _LOGGER.exception(f"{self}: callback {callback!r} raised")

    def manual_debounce(self, timeout: int, all_listeners: bool = False) -> None:
        """Ignore all frames for the next timeout ms (e.g. after a send).

        If all_listeners is True, then every Signal of this signature ignores them.
        A subsequent call restarts the timer.
        """

        if all_listeners:
            self._channel.manual_debounce.arm(timeout)
        else:
            self._manual_debounce.arm(timeout)

        _LOGGER.debug(
            f"{self}: manual debounce for {timeout} ms (all_listeners={all_listeners})"
        )

    async def send(self, payload: BitsT, timeout: float | None = None) -> Any:
        """Transmit a frame, and return the radio's result.

        On success, every Signal of this signature is sent a payload_send event. On
        failure, this Signal is sent an error event.

        Will raise:
            PayloadInvalid: the payload is not a sequence of bits
            TransmitFailed: the radio rejected it (or timed out, if timeout secs)
        """

        frame = bits_to_frame(payload)
        bits = list(frame)

        try:
            result = await asyncio.wait_for(
                call_handle(self._loop, self._channel.handle.tx, frame), timeout
            )
        except TimeoutError as err:
            error = exc.TransmitFailed(f"{self}: tx timed out after {timeout} secs")
            _LOGGER.error(f"{self}: tx error: {error}")
            self._emit(SignalEvent.ERROR, error)
            raise error from err
        except Exception as err:  # the radio's errors are of any type
            error = exc.TransmitFailed(f"{self}: tx failed: {err}")
            _LOGGER.error(f"{self}: tx error: {err}")
            self._emit(SignalEvent.ERROR, error)
            raise error from err

        _LOGGER.debug(f"{self}: send payload: {bit_array_to_string(bits)}")
        self._channel.broadcast_send(bits)
        return result

    def tx(self, payload: BitsT, callback: TxCallbackT | None = None) -> None:
        """Transmit a frame, with the radio's callback, if any (fire and forget)."""
        self._channel.handle.tx(bits_to_frame(payload), callback or _null_callback)

    def _payload_received(self, bits: BitsT) -> None:
        """Process a frame received by the shared radio channel."""

        if self._manual_debounce or self._channel.manual_debounce:
            _LOGGER.debug(
                f"{self}: manually debounced payload: {bit_array_to_string(bits)}"
            )
            return

        payload: PayloadT = [int(b) for b in bits]  # each Signal has its own copy
        if _DBG_FORCE_LOG_PAYLOADS:
            _LOGGER.warning(f"{self}: payload: {bit_array_to_string(payload)}")

        self._emit(SignalEvent.PAYLOAD, list(payload))

        if self._debounce is not None and self._debounce.is_suppressed(payload):
            _LOGGER.debug(f"{self}: debounced payload: {bit_array_to_string(payload)}")
            return

        data = self._parse(payload)
        if not data or not isinstance(data, dict) or not data.get(SZ_ID):
            return  # not a frame of this protocol

        self._emit(SignalEvent.DATA, data)

    def _parse(self, payload: PayloadT) -> RecordT | None | bool:
        try:
            return self._parser(payload)
        except Exception:  # logged, and treated as a rejection
            _LOGGER.exception(f"{self}: parser {self._parser!r} raised")
            return None

    def _payload_sent(self, payload: PayloadT) -> None:
        """Process a frame sent by any Signal of this signature."""
        self._emit(SignalEvent.PAYLOAD_SEND, payload)

    def close(self) -> asyncio.Future[None]:
        """Unregister, stop receiving frames, and cancel all timers."""

        result = self.unregister()
        self._detach()
        if self._debounce is not None:
            self._debounce.clear()
        self._manual_debounce.cancel()
        return result
