#!/usr/bin/env python3
"""RF433 - exceptions within the signal layer."""

from __future__ import annotations


class _Rf433BaseException(Exception):
    """Base class for all rf433_tx exceptions."""

    pass


class Rf433Exception(_Rf433BaseException):
    """Base class for all rf433_tx exceptions."""

    HINT: None | str = None

    def __init__(self, *args: object):
        super().__init__(*args)
        self.message: str | None = args[0] if args else None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.message and self.HINT:
            return f"{self.message} (hint: {self.HINT})"
        if self.message:
            return self.message
        if self.HINT:
            return f"Hint: {self.HINT}"
        return ""


########################################################################################
# Errors raised by (or on behalf of) the radio channel handle


class SignalError(Rf433Exception):
    """A failure when registering with, or transmitting via, the radio."""


class RegistrationFailed(SignalError):
    """The radio rejected the registration of a signal."""

    HINT = "the next register() will retry"


class UnregistrationFailed(SignalError):
    """The radio rejected the unregistration of a signal."""


class TransmitFailed(SignalError):
    """The radio rejected (or never completed) the transmit of a payload."""


########################################################################################
# Errors raised by the caller's input


class PayloadInvalid(Rf433Exception):
    """The payload is not a sequence of bits."""


class ConfigInvalid(Rf433Exception):
    """The configuration failed validation."""
