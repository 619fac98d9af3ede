#!/usr/bin/env python3
"""RF433 - attach a remote debugger (debugpy) to the CLI, e.g. from an IDE.

The listening address can be set via RF433_DEBUG_ADDR & RF433_DEBUG_PORT.
"""

from __future__ import annotations

import os
from enum import IntEnum
from typing import Final

SZ_DBG_MODE: Final = "debug_mode"

DEBUG_ADDR: Final = os.getenv("RF433_DEBUG_ADDR", "127.0.0.1")
DEBUG_PORT: Final = int(os.getenv("RF433_DEBUG_PORT", "5678"))


class DebugMode(IntEnum):
    """How many times -z was given on the command line."""

    OFF = 0
    WAIT = 1  # -z: listen, and pause until a debugger attaches
    LISTEN = 2  # -zz: listen, but don't pause


def start_debugging(mode: int) -> tuple[str, int] | None:
    """Listen for a debugger, and return the (addr, port) it is to attach to."""

    if mode == DebugMode.OFF:
        return None

    import debugpy  # type: ignore[import-untyped]

    debugpy.listen(address=(DEBUG_ADDR, DEBUG_PORT))
    print(f" - debugpy is listening on: {DEBUG_ADDR}:{DEBUG_PORT}")

    if mode == DebugMode.WAIT:
        print("   - paused until a debugger attaches (use -zz to not pause)...")
        debugpy.wait_for_client()
        print("   - debugger attached, resuming.")

    return DEBUG_ADDR, DEBUG_PORT
