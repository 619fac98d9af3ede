#!/usr/bin/env python3
"""RF433 - Test the registry of shared channels (binding & registration)."""

import asyncio

import pytest

from rf433_tx import ChannelRegistry, Signal, VirtualRadio, exceptions as exc

from .helpers import flush

SIGNATURE = "eurodomest"


async def test_get_or_create(registry: ChannelRegistry, radio: VirtualRadio) -> None:
    """A signature has only the one handle, however many times it is referenced."""

    channel = registry.get_or_create(SIGNATURE)

    assert registry.get_or_create(SIGNATURE) is channel
    assert channel.handle is radio.channels[SIGNATURE]

    assert SIGNATURE in registry
    assert list(registry) == [SIGNATURE]
    assert registry.signatures == (SIGNATURE,)
    assert len(registry) == 1

    _ = registry.get_or_create("elro")
    assert len(registry) == 2
    assert len(radio.channels) == 2


async def test_concurrent_binds(registry: ChannelRegistry, radio: VirtualRadio) -> None:
    """Concurrent binds collapse into one registration with the radio."""

    signals = [Signal(registry, SIGNATURE) for _ in range(3)]
    futs = [registry.bind(SIGNATURE, s) for s in signals]

    assert all(f is futs[0] for f in futs)  # the one shared registration
    await asyncio.gather(*futs)

    assert radio.channels[SIGNATURE].register_count == 1
    assert registry.get_or_create(SIGNATURE).bound == set(signals)


async def test_later_binds(registry: ChannelRegistry, radio: VirtualRadio) -> None:
    """Binds after the registration has completed reuse its outcome."""

    sig_a = Signal(registry, SIGNATURE)
    sig_b = Signal(registry, SIGNATURE)

    await registry.bind(SIGNATURE, sig_a)
    await registry.bind(SIGNATURE, sig_b)
    await registry.bind(SIGNATURE, sig_a)  # binding twice is harmless

    assert radio.channels[SIGNATURE].register_count == 1


async def test_unbind_last(registry: ChannelRegistry, radio: VirtualRadio) -> None:
    """The radio is unregistered only when the last subscriber is unbound."""

    handle = radio.channel(SIGNATURE)
    sig_a = Signal(registry, SIGNATURE)
    sig_b = Signal(registry, SIGNATURE)

    await asyncio.gather(
        registry.bind(SIGNATURE, sig_a), registry.bind(SIGNATURE, sig_b)
    )

    assert registry.unbind(SIGNATURE, sig_a) is None
    await flush()
    assert handle.unregister_count == 0

    fut = registry.unbind(SIGNATURE, sig_b)
    assert fut is not None
    await fut
    assert handle.unregister_count == 1
    assert not handle.is_registered

    assert registry.unbind(SIGNATURE, sig_b) is None  # unbinding twice is harmless
    assert registry.unbind("unknown", sig_b) is None
    await flush()
    assert handle.unregister_count == 1


async def test_rebind_after_unbind(
    registry: ChannelRegistry, radio: VirtualRadio
) -> None:
    """Registration is re-armed once all subscribers have been unbound."""

    handle = radio.channel(SIGNATURE)
    signal = Signal(registry, SIGNATURE)

    await registry.bind(SIGNATURE, signal)
    await registry.unbind(SIGNATURE, signal)  # type: ignore[misc]
    await registry.bind(SIGNATURE, signal)

    assert handle.register_count == 2
    assert handle.unregister_count == 1
    assert handle.is_registered


async def test_bind_races_unbind(registry: ChannelRegistry, radio: VirtualRadio) -> None:
    """A bind during an in-flight unregistration registers after it has settled."""

    radio.delay = 0.02
    handle = radio.channel(SIGNATURE)
    sig_a = Signal(registry, SIGNATURE)
    sig_b = Signal(registry, SIGNATURE)

    await registry.bind(SIGNATURE, sig_a)

    unregistration = registry.unbind(SIGNATURE, sig_a)
    await asyncio.sleep(0.005)  # the unregistration is now in flight
    assert handle.unregister_count == 1

    registration = registry.bind(SIGNATURE, sig_b)
    await asyncio.sleep(0.005)
    assert handle.register_count == 1  # still waiting for the unregistration

    await asyncio.gather(unregistration, registration)  # type: ignore[arg-type]

    assert handle.register_count == 2
    assert handle.is_registered


async def test_unbind_races_bind(registry: ChannelRegistry, radio: VirtualRadio) -> None:
    """An unbind during an in-flight registration unregisters after it has settled."""

    radio.delay = 0.02
    handle = radio.channel(SIGNATURE)
    signal = Signal(registry, SIGNATURE)

    registration = registry.bind(SIGNATURE, signal)
    unregistration = registry.unbind(SIGNATURE, signal)

    await asyncio.gather(registration, unregistration)  # type: ignore[arg-type]

    assert handle.register_count == 1
    assert handle.unregister_count == 1
    assert not handle.is_registered


async def test_registration_failed(
    registry: ChannelRegistry, radio: VirtualRadio
) -> None:
    """A failed registration is shared by all, and retried by the next bind."""

    handle = radio.channel(SIGNATURE)
    handle.fail_next("register")

    sig_a = Signal(registry, SIGNATURE)
    sig_b = Signal(registry, SIGNATURE)

    fut_a = registry.bind(SIGNATURE, sig_a)
    fut_b = registry.bind(SIGNATURE, sig_b)

    for fut in (fut_a, fut_b):
        with pytest.raises(exc.RegistrationFailed):
            await fut
    assert handle.register_count == 1

    await registry.bind(SIGNATURE, sig_a)  # the retry

    assert handle.register_count == 2
    assert handle.is_registered


async def test_unbind_after_failure(
    registry: ChannelRegistry, radio: VirtualRadio
) -> None:
    """There is nothing to unregister if the registration failed."""

    handle = radio.channel(SIGNATURE)
    handle.fail_next("register")
    signal = Signal(registry, SIGNATURE)

    with pytest.raises(exc.RegistrationFailed):
        await registry.bind(SIGNATURE, signal)

    await registry.unbind(SIGNATURE, signal)  # type: ignore[misc]
    assert handle.unregister_count == 0


async def test_unregistration_failed(
    registry: ChannelRegistry, radio: VirtualRadio
) -> None:
    """A failed unregistration raises, but a later bind will still register."""

    handle = radio.channel(SIGNATURE)
    signal = Signal(registry, SIGNATURE)

    await registry.bind(SIGNATURE, signal)

    handle.fail_next("unregister")
    with pytest.raises(exc.UnregistrationFailed):
        await registry.unbind(SIGNATURE, signal)  # type: ignore[misc]

    await registry.bind(SIGNATURE, signal)
    assert handle.register_count == 2


async def test_close(radio: VirtualRadio) -> None:
    """Closing the registry releases every registration."""

    registry = ChannelRegistry(radio.channel)
    signals = [Signal(registry, sig) for sig in ("eurodomest", "elro", "elro")]

    await asyncio.gather(*(s.register() for s in signals))
    await registry.close()

    for handle in radio.channels.values():
        assert handle.register_count == 1
        assert handle.unregister_count == 1
        assert not handle.is_registered


async def test_reuse_after_close(radio: VirtualRadio) -> None:
    """A Signal created after the registry is closed gets a fresh channel."""

    registry = ChannelRegistry(radio.channel)
    old_channel = registry.get_or_create(SIGNATURE)
    await Signal(registry, SIGNATURE).register()
    await registry.close()

    assert len(registry) == 0

    signal = Signal(registry, SIGNATURE)
    payloads: list[list[int]] = []
    signal.add_listener("payload", payloads.append)

    assert await signal.register() is True
    assert registry.get_or_create(SIGNATURE) is not old_channel

    radio.inject(SIGNATURE, [1, 0, 1, 1])
    await flush()
    assert payloads == [[1, 0, 1, 1]]

    await registry.close()


async def test_handle_error_types() -> None:
    """Errors from the radio needn't be exceptions, nor arrive on the loop's thread."""

    class StringErrorChannel:
        def add_payload_handler(self, handler):  # type: ignore[no-untyped-def]
            return lambda: None

        def register(self, callback):  # type: ignore[no-untyped-def]
            callback("radio is busy")

        def unregister(self, callback):  # type: ignore[no-untyped-def]
            callback(None)

        def tx(self, frame, callback):  # type: ignore[no-untyped-def]
            callback(None, None)

    registry = ChannelRegistry(lambda _: StringErrorChannel())  # type: ignore[arg-type, return-value]
    signal = Signal(registry, SIGNATURE)

    with pytest.raises(exc.RegistrationFailed) as exc_info:
        await registry.bind(SIGNATURE, signal)

    assert isinstance(exc_info.value.__cause__, exc.SignalError)
    assert "radio is busy" in str(exc_info.value)
