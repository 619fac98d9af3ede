#!/usr/bin/env python3
"""RF433 - a shared-radio signal layer for 433MHz remotes and sockets."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# used by the debounce filter (all in milliseconds)...
DEFAULT_DEBOUNCE_TIME: Final[int] = 0  # 0 disables the filter
MAX_DEBOUNCE_TIME: Final[int] = 60_000

# used by the shared channel...
MAX_LISTENERS: Final[int] = 100  # soft limit, exceeding it is logged as a leak

# valid symbols of a demodulated frame
BIT_VALUES: Final[tuple[int, int]] = (0, 1)


class SignalEvent(StrEnum):
    """The events a Signal makes available to its listeners."""

    PAYLOAD = "payload"  # every raw frame, pre-filter
    DATA = "data"  # parsed, identity-bearing record, post-debounce
    PAYLOAD_SEND = "payload_send"  # a successful transmit, to all on the signature
    ERROR = "error"  # registration/transmit failure, instance-scoped


SZ_ADDRESS: Final = "address"
SZ_CAPABILITIES: Final = "capabilities"
SZ_CLASS: Final = "class"
SZ_DEBOUNCE_TIME: Final = "debounce_time"
SZ_FRAME_LOG: Final = "frame_log"
SZ_GROUP: Final = "group"
SZ_ID: Final = "id"
SZ_PARSER: Final = "parser"
SZ_PAYLOAD: Final = "payload"
SZ_SIGNAL: Final = "signal"
SZ_SIGNALS: Final = "signals"
SZ_SIGNATURE: Final = "signature"
SZ_STATE: Final = "state"
SZ_UNIT: Final = "unit"

SZ_EURODOMEST: Final = "eurodomest"
SZ_ELRO: Final = "elro"


class DevClass(StrEnum):
    """The classes of device that may be declared against a signal."""

    SOCKET = "socket"
    REMOTE = "remote"
    DOORBELL = "doorbell"
    SENSOR = "sensor"
    OTHER = "other"
