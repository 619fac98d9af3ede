#!/usr/bin/env python3
"""A CLI for the rf433_tx library."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import sys
from collections.abc import Iterable
from datetime import datetime as dt
from io import TextIOWrapper
from typing import Any, Final

import click
from colorama import Fore, Style, init as colorama_init

from rf433_tx import (
    PARSERS,
    ChannelRegistry,
    Signal,
    SignalEvent,
    VirtualRadio,
    bit_array_to_string,
    bit_string_to_array,
    exceptions as exc,
    set_logging,
)
from rf433_tx.const import (
    SZ_DEBOUNCE_TIME,
    SZ_FRAME_LOG,
    SZ_PARSER,
    SZ_SIGNALS,
    SZ_SIGNATURE,
)
from rf433_tx.logger import CONSOLE_COLS, DEFAULT_DATEFMT, DEFAULT_FMT
from rf433_tx.schemas import SCH_GLOBAL_CONFIG, validate_config

from .debug import SZ_DBG_MODE, start_debugging

# this is called after import colorlog to ensure its handlers wrap the correct streams
logging.basicConfig(level=logging.WARNING, format=DEFAULT_FMT, datefmt=DEFAULT_DATEFMT)


PARSE: Final = "parse"
SEND: Final = "send"

SZ_BITS: Final = "bits"
SZ_FAST: Final = "fast"
SZ_FRAMES: Final = "frames"
SZ_INPUT_FILE: Final = "input_file"
SZ_REPEATS: Final = "repeats"

ECHO_WAIT_TIME: Final[float] = 0.05  # secs, for the echo of the last send

COLORS = {
    SignalEvent.PAYLOAD: Style.DIM,
    SignalEvent.DATA: Fore.GREEN,
    SignalEvent.PAYLOAD_SEND: Fore.CYAN,
    SignalEvent.ERROR: Style.BRIGHT + Fore.RED,
}

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

# e.g. "12:34:56.789 eurodomest 101101...", where the dtm & signature are optional
FRAME_LINE_REGEX = re.compile(
    r"^(?:(?P<dtm>\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?)\s+)?"
    r"(?:(?P<signature>[A-Za-z_][\w-]*)\s+)?"
    r"(?P<bits>[01]+)$"
)


def parse_frame_line(line: str) -> tuple[dt | None, str | None, list[int]] | None:
    """Return the (dtm, signature, bits) of a frame log line, or None if no frame.

    Comments (after a #) and blank lines are ignored.
    """

    line = line.split("#", maxsplit=1)[0].strip()
    if not line:
        return None

    if not (match := FRAME_LINE_REGEX.match(line)):
        raise exc.PayloadInvalid(f"Not a frame: {line!r}")

    fmt = "%H:%M:%S.%f" if "." in (match["dtm"] or "") else "%H:%M:%S"
    dtm = dt.strptime(match["dtm"], fmt) if match["dtm"] else None
    return dtm, match["signature"], bit_string_to_array(match["bits"])


def normalise_config(kwargs: dict[str, Any], lib_config: dict[str, Any]) -> dict:
    """Merge the signal given on the command line into the library's config.

    Will raise ConfigInvalid if the resulting config is not valid.
    """

    if signature := kwargs.get(SZ_SIGNATURE):
        parser = kwargs.get(SZ_PARSER)
        if parser is None and signature in PARSERS:
            parser = signature

        lib_config[SZ_SIGNALS] = [
            s for s in lib_config.get(SZ_SIGNALS, []) if s[SZ_SIGNATURE] != signature
        ] + [
            {
                SZ_SIGNATURE: signature,
                SZ_DEBOUNCE_TIME: kwargs.get(SZ_DEBOUNCE_TIME) or 0,
                SZ_PARSER: parser,
            }
        ]

    return validate_config(SCH_GLOBAL_CONFIG, lib_config)


# Args/Params for all commands
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-z", "--debug-mode", count=True, help="enable debugger (-zz: without pausing)"
)
@click.option("-c", "--config-file", type=click.File("r"))
@click.option("-o", "--frame-log", type=click.Path(), help="Log all frames to file")
@click.option("-lf", "--long-format", is_flag=True, help="dont truncate STDOUT")
@click.pass_context
def cli(ctx: click.Context, config_file: TextIOWrapper | None = None, **kwargs: Any):
    """A CLI for the rf433_tx library."""

    start_debugging(kwargs[SZ_DBG_MODE])  # do first

    lib_config: dict[str, Any] = json.load(config_file) if config_file else {}
    if frame_log := kwargs.pop(SZ_FRAME_LOG, None):
        lib_config[SZ_FRAME_LOG] = frame_log  # CLI takes precedence

    ctx.obj = kwargs, lib_config


# Args/Params for a single signal
class SignalCommand(click.Command):  # client.py <command> -s eurodomest -d 500
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(  # --signature
            0,
            click.Option(
                ("-s", "--signature"),
                type=click.STRING,
                help="e.g. eurodomest (in addition to any in the config file)",
            ),
        )
        self.params.insert(  # --debounce-time
            1,
            click.Option(
                ("-d", "--debounce-time"),
                type=click.IntRange(min=0),
                default=0,
                help="in milliseconds (0 disables)",
            ),
        )
        self.params.insert(  # --parser
            2,
            click.Option(
                ("-p", "--parser"),
                type=click.Choice(list(PARSERS)),
                help="defaults to the parser of the same name as the signature",
            ),
        )


#
# 1/2: PARSE (a frame log)
@click.command(cls=SignalCommand)  # parse a frame log, then stop
@click.argument("input-file", type=click.File("r"), default=sys.stdin)
@click.option("-f", "--fast", is_flag=True, help="ignore the timing of the frames")
@click.pass_obj
def parse(obj: tuple[dict, dict], **kwargs: Any):
    """Replay a frame log through the signal(s), for payloads/data."""
    config, lib_config = obj
    config = config | kwargs

    # read it now, as click closes the file (but not stdin) when this returns
    config[SZ_FRAMES] = config.pop(SZ_INPUT_FILE).readlines()

    return PARSE, normalise_config(config, lib_config), config


#
# 2/2: SEND (a frame, via a virtual radio that echos)
@click.command(cls=SignalCommand)  # send a frame, then stop
@click.argument("bits", type=click.STRING)
@click.option("-r", "--repeats", type=click.IntRange(min=1, max=10), default=1)
@click.pass_obj
def send(obj: tuple[dict, dict], **kwargs: Any):
    """Send a frame (e.g. 101100...) via the signal, for payload_sends."""
    config, lib_config = obj
    config = config | kwargs

    if not config.get(SZ_SIGNATURE):
        raise click.UsageError("a signature is required for sending")
    config[SZ_BITS] = bit_string_to_array(config[SZ_BITS])

    return SEND, normalise_config(config, lib_config), config


def print_event(signal: Signal, event: SignalEvent, *args: Any, **kwargs: Any) -> None:
    """Print an event as it arrives (a callback)."""

    value = args[0] if args else None
    if isinstance(value, list):
        value = bit_array_to_string(value)

    line = f"{dt.now():%H:%M:%S.%f}"[:-3] + f" {signal.signature} {event:<12} {value}"
    if not kwargs.get("long_format"):
        line = line[:CONSOLE_COLS]
    print(f"{COLORS[event]}{line}")


async def replay_frames(
    radio: VirtualRadio, signatures: list[str], lines: Iterable[str], fast: bool
) -> int:
    """Inject each frame of the log into the radio, paced as per its timestamps."""

    count = 0
    prev_dtm: dt | None = None

    for line in lines:
        if (frame := parse_frame_line(line)) is None:
            continue
        dtm, signature, bits = frame

        if not fast and dtm and prev_dtm and dtm > prev_dtm:
            await asyncio.sleep((dtm - prev_dtm).total_seconds())
        prev_dtm = dtm or prev_dtm

        for sig in [signature] if signature else signatures:
            radio.inject(sig, bits)
        count += 1
        await asyncio.sleep(0)  # let the channels dispatch the frame

    await asyncio.sleep(0)
    return count


async def async_main(command: str, lib_config: dict[str, Any], **kwargs: Any) -> None:
    """Run the signals of the config against a virtual radio, printing their events."""

    if lib_config.get(SZ_FRAME_LOG):
        set_logging(cc_console=False, **lib_config[SZ_FRAME_LOG])

    radio = VirtualRadio(echo=command == SEND)
    registry = ChannelRegistry(radio.channel)

    signals = [Signal.from_config(registry, cfg) for cfg in lib_config[SZ_SIGNALS]]
    if not signals:
        raise click.UsageError("no signals, use --signature or a config file")

    colorama_init(autoreset=True)
    for signal in signals:
        for event in SignalEvent:
            signal.add_listener(
                event,
                lambda *a, s=signal, e=event: print_event(s, e, *a, **kwargs),
            )

    print("\r\nclient.py: Starting signals...")

    try:  # main code here
        await asyncio.gather(*(s.register() for s in signals))

        if command == PARSE:
            count = await replay_frames(
                radio,
                list(dict.fromkeys(s.signature for s in signals)),
                kwargs[SZ_FRAMES],
                kwargs[SZ_FAST],
            )
            msg = f"ended without error, {count} frames (e.g. EOF)"

        else:  # if command == SEND:
            signal = next(s for s in signals if s.signature == kwargs[SZ_SIGNATURE])
            for _ in range(kwargs[SZ_REPEATS]):
                signal.manual_debounce(int(ECHO_WAIT_TIME * 1000), all_listeners=True)
                await signal.send(kwargs[SZ_BITS])
            await asyncio.sleep(ECHO_WAIT_TIME)
            msg = "ended without error"

    except asyncio.CancelledError:
        msg = "ended via: CancelledError (e.g. SIGINT)"
    except exc.Rf433Exception as err:
        msg = f"ended via: Rf433Exception: {err}"
    finally:
        await registry.close()

    print(f"\r\nclient.py: Signals stopped: {msg}")


cli.add_command(parse)
cli.add_command(send)


def main() -> None:
    print("\r\nclient.py: Starting rf433_tx...")

    try:
        result = cli(standalone_mode=False)
    except (click.ClickException, exc.Rf433Exception) as err:
        print(f"Error: {err}")
        sys.exit(-1)

    if isinstance(result, int):
        sys.exit(result)

    (command, lib_config, kwargs) = result

    try:
        asyncio.run(async_main(command, lib_config, **kwargs))
    except KeyboardInterrupt:
        print("\r\nclient.py: Signals stopped: ended via: KeyboardInterrupt")
    except click.UsageError as err:
        print(f"Error: {err}")
        sys.exit(-1)

    print(" - finished rf433_tx.\r\n")


if __name__ == "__main__":
    main()
