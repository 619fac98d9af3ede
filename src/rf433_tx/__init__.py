#!/usr/bin/env python3
"""RF433 - a shared-radio signal layer for 433MHz remotes and sockets."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING, Any

from .const import SZ_ELRO, SZ_EURODOMEST, DevClass, SignalEvent
from .debounce import DebounceFilter, ManualDebounce
from .logger import FRAME_LOGGER, set_logging
from .parsers import (
    PARSERS,
    bit_array_to_string,
    bit_string_to_array,
    default_parser,
    elro_parser,
    elro_to_payload,
    eurodomest_parser,
    eurodomest_to_payload,
    parser_by_signature,
)
from .radio import VirtualChannel, VirtualRadio
from .registry import ChannelRegistry, SharedChannel
from .schemas import (
    SCH_DEVICE_CONFIG,
    SCH_GLOBAL_CONFIG,
    SCH_SIGNAL_CONFIG,
    validate_config,
)
from .signal import Signal
from .typing import ParserT, RadioChannelT
from .version import VERSION

__all__ = [
    "VERSION",
    #
    "ChannelRegistry",
    "SharedChannel",
    "Signal",
    "SignalEvent",
    #
    "DebounceFilter",
    "ManualDebounce",
    #
    "PARSERS",
    "ParserT",
    "bit_array_to_string",
    "bit_string_to_array",
    "default_parser",
    "elro_parser",
    "elro_to_payload",
    "eurodomest_parser",
    "eurodomest_to_payload",
    "parser_by_signature",
    #
    "RadioChannelT",
    "VirtualChannel",
    "VirtualRadio",
    #
    "SCH_DEVICE_CONFIG",
    "SCH_GLOBAL_CONFIG",
    "SCH_SIGNAL_CONFIG",
    "validate_config",
    #
    "SZ_ELRO",
    "SZ_EURODOMEST",
    "DevClass",
    #
    "FRAME_LOGGER",
    "set_frame_logging_config",
]


if TYPE_CHECKING:
    from logging import Logger


async def set_frame_logging_config(**config: Any) -> Logger:
    """Set up frame logging to a file and/or the console.

    Runs in an executor, as opening the log file is a blocking call.

    :param config: if file_name is included, opens the frame log file
    :return: a logging.Logger
    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, partial(set_logging, FRAME_LOGGER, **config))
    return FRAME_LOGGER
