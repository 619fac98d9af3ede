#!/usr/bin/env python3
"""Fixtures for testing."""

from collections.abc import AsyncGenerator

import pytest

from rf433_tx import ChannelRegistry, VirtualRadio

#######################################################################################


@pytest.fixture()
async def radio() -> VirtualRadio:  # NOTE: async to get running loop
    """Return a virtual radio, that does not echo its own sends."""
    return VirtualRadio()


@pytest.fixture()
async def registry(radio: VirtualRadio) -> AsyncGenerator[ChannelRegistry, None]:
    """Return a fresh registry of channels, backed by the virtual radio."""

    registry = ChannelRegistry(radio.channel)

    try:
        yield registry
    finally:
        await registry.close()
