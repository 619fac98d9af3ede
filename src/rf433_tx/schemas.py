#!/usr/bin/env python3
"""RF433 - a shared-radio signal layer for 433MHz remotes and sockets.

Schema processor for the signal layer.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final, TypedDict

import voluptuous as vol

from . import exceptions as exc
from .const import (
    DEFAULT_DEBOUNCE_TIME,
    MAX_DEBOUNCE_TIME,
    SZ_CAPABILITIES,
    SZ_CLASS,
    SZ_DEBOUNCE_TIME,
    SZ_FRAME_LOG,
    SZ_ID,
    SZ_PARSER,
    SZ_SIGNAL,
    SZ_SIGNALS,
    SZ_SIGNATURE,
    DevClass,
)
from .parsers import PARSERS
from .typing import ParserT

_LOGGER = logging.getLogger(__name__)


__all__ = [
    "SCH_DEVICE_CONFIG",
    "SCH_FRAME_LOG",
    "SCH_GLOBAL_CONFIG",
    "SCH_SIGNAL_CONFIG",
    "parser_from_config",
    "validate_config",
]


SCH_SIGNATURE = vol.All(str, vol.Strip, vol.Length(min=1))
SCH_DEBOUNCE_TIME = vol.All(
    vol.Coerce(int), vol.Range(min=0, max=MAX_DEBOUNCE_TIME)
)

#
# 1/3: Signal configuration
SCH_SIGNAL_CONFIG = vol.Schema(
    {
        vol.Required(SZ_SIGNATURE): SCH_SIGNATURE,
        vol.Optional(SZ_DEBOUNCE_TIME, default=DEFAULT_DEBOUNCE_TIME): (
            SCH_DEBOUNCE_TIME
        ),
        vol.Optional(SZ_PARSER): vol.Any(None, vol.In(list(PARSERS))),
    },
    extra=vol.PREVENT_EXTRA,
)

#
# 2/3: Device (driver) declaration, one per type of device
SCH_DEVICE_CONFIG = vol.Schema(
    {
        vol.Required(SZ_ID): vol.All(str, vol.Length(min=1)),
        vol.Required(SZ_CLASS): vol.All(vol.Lower, vol.Coerce(DevClass)),
        vol.Required(SZ_SIGNAL): SCH_SIGNATURE,
        vol.Optional(SZ_CAPABILITIES, default=[]): [str],
        vol.Optional(SZ_DEBOUNCE_TIME, default=DEFAULT_DEBOUNCE_TIME): (
            SCH_DEBOUNCE_TIME
        ),
    },
    extra=vol.REMOVE_EXTRA,  # e.g. pairing views, images, icons
)

#
# 3/3: Frame log configuration
SZ_FILE_NAME: Final = "file_name"
SZ_ROTATE_BACKUPS: Final = "rotate_backups"
SZ_ROTATE_BYTES: Final = "rotate_bytes"


class FrameLogConfigT(TypedDict):
    file_name: str
    rotate_backups: int
    rotate_bytes: int | None


def NormaliseFrameLog(rotate_backups: int = 0) -> Callable[..., Any]:
    def normalise_frame_log(node_value: str | FrameLogConfigT) -> FrameLogConfigT:
        if isinstance(node_value, str):
            return {
                SZ_FILE_NAME: node_value,
                SZ_ROTATE_BACKUPS: rotate_backups,
                SZ_ROTATE_BYTES: None,
            }
        return node_value

    return normalise_frame_log


SCH_FRAME_LOG = vol.Any(
    None,
    vol.All(str, NormaliseFrameLog()),
    vol.Schema(
        {
            vol.Required(SZ_FILE_NAME): str,
            vol.Optional(SZ_ROTATE_BACKUPS, default=0): vol.All(int, vol.Range(min=0)),
            vol.Optional(SZ_ROTATE_BYTES, default=None): vol.Any(None, int),
        },
        extra=vol.PREVENT_EXTRA,
    ),
)

SCH_GLOBAL_CONFIG = vol.Schema(
    {
        vol.Optional(SZ_SIGNALS, default=[]): [SCH_SIGNAL_CONFIG],
        vol.Optional(SZ_FRAME_LOG, default=None): SCH_FRAME_LOG,
    },
    extra=vol.PREVENT_EXTRA,
)


def validate_config(schema: vol.Schema, config: dict[str, Any]) -> dict[str, Any]:
    """Return the config, validated (and with defaults) by the schema.

    Will raise ConfigInvalid if the config is not valid.
    """

    try:
        return schema(config)  # type: ignore[no-any-return]
    except vol.Invalid as err:
        raise exc.ConfigInvalid(f"Invalid config: {err}") from err


def parser_from_config(name: str | None) -> ParserT | None:
    """Return the bundled parser of that name, or None (for the default parser)."""

    if name is None:
        return None
    if name not in PARSERS:
        raise exc.ConfigInvalid(f"Unknown parser: {name}")
    return PARSERS[name]
