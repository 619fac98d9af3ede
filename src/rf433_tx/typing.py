#!/usr/bin/env python3
"""RF433 - Typing for the radio channel handle, parsers and listeners."""

from collections.abc import Callable, Sequence
from typing import Any, Protocol, TypeAlias

BitsT: TypeAlias = Sequence[int]  # a demodulated frame, as received
PayloadT: TypeAlias = list[int]  # a (copied) frame, as passed to listeners
RecordT: TypeAlias = dict[str, Any]  # a parsed frame

ParserT: TypeAlias = Callable[[PayloadT], RecordT | None | bool]
ListenerT: TypeAlias = Callable[..., None]
RemoverT: TypeAlias = Callable[[], None]

PayloadHandlerT: TypeAlias = Callable[[BitsT], None]
RegisterCallbackT: TypeAlias = Callable[..., None]  # (err) or (None, True)
TxCallbackT: TypeAlias = Callable[[BaseException | None, Any], None]


class RadioChannelT(Protocol):
    """A typing.Protocol (i.e. a structural type) of a 433MHz radio channel.

    There is one such handle per signature. It demodulates frames into bit arrays,
    and modulates bit arrays into frames. Each callback is invoked exactly once,
    possibly from a thread other than the event loop's.
    """

    def add_payload_handler(self, handler: PayloadHandlerT) -> RemoverT: ...

    def register(self, callback: RegisterCallbackT) -> None: ...

    def unregister(self, callback: RegisterCallbackT) -> None: ...

    def tx(self, frame: bytes, callback: TxCallbackT) -> None: ...


HandleFactoryT: TypeAlias = Callable[[str], RadioChannelT]
