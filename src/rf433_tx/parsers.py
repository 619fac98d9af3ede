#!/usr/bin/env python3
"""RF433 - Payload parsers (bit arrays into records).

A parser takes a copy of a demodulated frame and returns either a record (a dict
that includes an `id`) or a falsy value, meaning the frame is not of its protocol.
Returning a falsy value is normal flow control, and never an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Final

from . import exceptions as exc
from .const import (
    BIT_VALUES,
    SZ_ADDRESS,
    SZ_ELRO,
    SZ_EURODOMEST,
    SZ_GROUP,
    SZ_ID,
    SZ_PAYLOAD,
    SZ_STATE,
    SZ_UNIT,
)
from .typing import BitsT, ParserT, PayloadT, RecordT

_LOGGER = logging.getLogger(__name__)


__all__ = [
    "PARSERS",
    "bit_array_to_string",
    "bit_string_to_array",
    "bits_to_frame",
    "default_parser",
    "elro_parser",
    "elro_to_payload",
    "eurodomest_parser",
    "eurodomest_to_payload",
    "parser_by_signature",
]


EURODOMEST_LEN: Final[int] = 24
EURODOMEST_ALL_UNITS: Final = "111"

ELRO_LEN: Final[int] = 12
ELRO_ON: Final = "10"
ELRO_OFF: Final = "01"


def bit_array_to_string(bits: Iterable[int]) -> str:
    """Return a frame as a printable bit-string, e.g. [1, 0, 1] -> '101'."""
    return "".join(str(int(b)) for b in bits)


def bit_string_to_array(text: str) -> PayloadT:
    """Return a bit-string as a frame, e.g. '101' -> [1, 0, 1]."""

    text = text.strip()
    if not text or set(text) - {"0", "1"}:
        raise exc.PayloadInvalid(f"Not a bit-string: {text!r}")
    return [int(c) for c in text]


def bits_to_frame(bits: BitsT) -> bytes:
    """Return a frame as the buffer expected by a radio handle (one byte per bit)."""

    try:
        frame = bytes(int(b) for b in bits)
    except (TypeError, ValueError) as err:
        raise exc.PayloadInvalid(f"Not a sequence of bits: {bits!r}") from err

    if not frame or any(b not in BIT_VALUES for b in frame):
        raise exc.PayloadInvalid(f"Not a sequence of bits: {bits!r}")
    return frame


def default_parser(payload: PayloadT) -> RecordT:
    """Wrap the frame as a bit-string, without an id (so it never validates)."""
    return {SZ_PAYLOAD: bit_array_to_string(payload)}


def eurodomest_parser(payload: PayloadT) -> RecordT | None:
    """Parse a Eurodomest frame (20-bit address, 3-bit unit, 1-bit state).

    A unit of 0b111 addresses all units of the address (a group command).
    """

    if len(payload) != EURODOMEST_LEN:
        return None

    bits = bit_array_to_string(payload)
    address, unit, state = bits[:20], bits[20:23], bits[23]

    return {
        SZ_ADDRESS: address,
        SZ_UNIT: unit,
        SZ_GROUP: unit == EURODOMEST_ALL_UNITS,
        SZ_STATE: state == "1",
        SZ_ID: address,
    }


def eurodomest_to_payload(
    address: str, unit: str = EURODOMEST_ALL_UNITS, state: bool = True
) -> PayloadT:
    """Return the frame that would be parsed into the given fields."""

    if len(address) != 20 or len(unit) != 3:
        raise exc.PayloadInvalid(f"Invalid address/unit: {address!r}/{unit!r}")
    return bit_string_to_array(f"{address}{unit}{int(state)}")


def elro_parser(payload: PayloadT) -> RecordT | None:
    """Parse an Elro frame (5-bit address, 5-bit unit, 2-bit state).

    The remote is the device, so its address is its id (all units share the one id).
    """

    if len(payload) != ELRO_LEN:
        return None

    bits = bit_array_to_string(payload)
    address, unit, state = bits[:5], bits[5:10], bits[10:]

    if state not in (ELRO_ON, ELRO_OFF):
        return None

    return {
        SZ_ADDRESS: address,
        SZ_UNIT: unit,
        SZ_STATE: state == ELRO_ON,
        SZ_ID: address,
    }


def elro_to_payload(address: str, unit: str, state: bool) -> PayloadT:
    """Return the frame that would be parsed into the given fields."""

    if len(address) != 5 or len(unit) != 5:
        raise exc.PayloadInvalid(f"Invalid address/unit: {address!r}/{unit!r}")
    return bit_string_to_array(f"{address}{unit}{ELRO_ON if state else ELRO_OFF}")


PARSERS: Final[dict[str, ParserT]] = {
    SZ_ELRO: elro_parser,
    SZ_EURODOMEST: eurodomest_parser,
}


def parser_by_signature(signature: str) -> ParserT:
    """Return the bundled parser for a signature, else the default parser."""

    if (parser := PARSERS.get(signature)) is None:
        _LOGGER.debug(f"No parser bundled for signature: {signature}, using default")
        return default_parser
    return parser
