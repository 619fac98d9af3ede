#!/usr/bin/env python3
"""RF433 - helpers for testing."""

import asyncio
from functools import partial
from pathlib import Path
from typing import Any

from rf433_tx import Signal, SignalEvent

TEST_DIR = Path(__file__).resolve().parent

FRAME_0 = [1, 0, 1, 1]  # short enough to be rejected by every bundled parser
FRAME_1 = [1, 0, 1, 1, 0, 0, 1, 0, 1, 1, 0, 1, 0, 0, 1, 1, 0, 1, 0, 1, 1, 1, 1, 1]
FRAME_2 = [1, 0, 1, 1, 0, 0, 1, 0, 1, 1, 0, 1, 0, 0, 1, 1, 0, 1, 0, 1, 1, 1, 1, 0]


async def flush(cycles: int = 5) -> None:
    """Allow any callbacks (e.g. of frames or radio completions) to run."""
    for _ in range(cycles):
        await asyncio.sleep(0)


def id_parser(record_id: str = "X1") -> Any:
    """Return a parser that accepts every frame, with the given id."""

    def parser(payload: list[int]) -> dict[str, Any]:
        return {"id": record_id, "payload": "".join(map(str, payload))}

    return parser


class EventRecorder:
    """Record every event of a Signal, in the order they arrived."""

    def __init__(self, signal: Signal) -> None:
        self.events: list[tuple[SignalEvent, Any]] = []
        for event in SignalEvent:
            signal.add_listener(event, partial(self._record, event))

    def _record(self, event: SignalEvent, *args: Any) -> None:
        self.events.append((event, args[0] if args else None))

    def __call__(self, event: SignalEvent) -> list[Any]:
        return [v for e, v in self.events if e == event]

    def clear(self) -> None:
        self.events.clear()
