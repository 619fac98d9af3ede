#!/usr/bin/env python3
"""RF433 - Test the frame log."""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from rf433_tx import (
    FRAME_LOGGER,
    VERSION,
    ChannelRegistry,
    Signal,
    VirtualRadio,
    set_frame_logging_config,
    set_logging,
)

from .helpers import FRAME_1, flush


@pytest.fixture()
def frame_logger() -> Generator[logging.Logger, None, None]:
    """Restore the frame logger to its initial (silent) state afterwards."""

    try:
        yield FRAME_LOGGER
    finally:
        for handler in list(FRAME_LOGGER.handlers):
            FRAME_LOGGER.removeHandler(handler)
            handler.close()
        FRAME_LOGGER.setLevel(logging.NOTSET)
        FRAME_LOGGER.propagate = True


def _read_log(file_name: Path) -> list[list[str]]:
    for handler in FRAME_LOGGER.handlers:
        handler.flush()
    return [line.split() for line in file_name.read_text().splitlines()]


def test_frame_log(frame_logger: logging.Logger, tmp_path: Path) -> None:
    file_name = tmp_path / "frames.log"
    set_logging(frame_logger, file_name=str(file_name))

    frame_logger.info("1011", extra={"signature": "elro"})
    frame_logger.debug("0000", extra={"signature": "elro"})  # not a frame
    frame_logger.info("1100")

    lines = _read_log(file_name)

    assert lines[0][1:] == ["-", "rf433_tx", VERSION]  # the initial line
    assert lines[1][1:] == ["elro", "1011"]
    assert lines[2][1:] == ["1100"]  # the signature is optional
    assert len(lines) == 3


def test_frame_log_disabled(frame_logger: logging.Logger) -> None:
    set_logging(frame_logger)

    assert frame_logger.handlers == []
    assert not frame_logger.isEnabledFor(logging.INFO)


async def test_frame_log_of_channel(
    frame_logger: logging.Logger, tmp_path: Path
) -> None:
    """Every frame received by a channel is logged, whether it is parsed or not."""

    file_name = tmp_path / "frames.log"
    await set_frame_logging_config(file_name=str(file_name), rotate_backups=2)

    radio = VirtualRadio()
    registry = ChannelRegistry(radio.channel)
    await Signal(registry, "eurodomest").register()

    radio.inject("eurodomest", FRAME_1)
    await flush()
    await registry.close()

    lines = _read_log(file_name)

    assert lines[-1][1:] == ["eurodomest", "".join(map(str, FRAME_1))]
