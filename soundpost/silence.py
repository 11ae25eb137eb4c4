"""
SoundPost v1 Log Parser

Turns the engine's combined stdout/stderr text into silence events.

Diagnostic format (engine-controlled):
    [silencedetect @ 0x7f9c] silence_start: 0
    [silencedetect @ 0x7f9c] silence_end: 2.7402 | silence_duration: 2.7402

Invariants:
    - Marker lines may be glued to other output (progress lines); every
      occurrence of the marker starts a new logical line
    - Events are yielded in encounter order
    - Malformed or unknown pairs are dropped, never raised
    - Empty input yields an empty sequence
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass


MARKER = "[silencedetect"

KEY_START = "silence_start"
KEY_END = "silence_end"
KEY_DURATION = "silence_duration"

# Both substrings must be present for the decode-misalignment defect
OVERREAD_MARKERS = (" overread, skip ", " enddists: ")

_MARKER_SPLIT = re.compile(re.escape(MARKER))
_LINE_END = re.compile(r"[\r\n]")


@dataclass(frozen=True)
class SilenceEvent:
    """One detected interval of near-zero amplitude (seconds)."""

    start: float
    end: float | None = None
    duration: float | None = None

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "duration": self.duration}


def iter_silence_pairs(text: str) -> Iterator[tuple[str, str]]:
    """
    Yield raw (key, value) pairs found after each silence marker.

    Args:
        text: Combined engine output

    Yields:
        Tuples like ("silence_end", "2.7402"), in encounter order.
    """
    if not text:
        return

    # Everything before the first marker is unrelated output
    for chunk in _MARKER_SPLIT.split(text)[1:]:
        line = _LINE_END.split(chunk, 1)[0].strip()
        _, sep, payload = line.partition("] ")
        if not sep:
            continue
        for item in payload.split(" | "):
            parts = item.strip().split(": ")
            if len(parts) != 2:
                continue
            yield parts[0].strip(), parts[1].strip()


def parse_silence_events(text: str) -> Iterator[SilenceEvent]:
    """
    Group marker pairs into SilenceEvents.

    A silence_start opens an event; silence_end and silence_duration fill it.
    The event is emitted when the next silence_start arrives or the text ends,
    so a trailing silence without an end is still reported (end=None).

    Args:
        text: Combined engine output

    Yields:
        SilenceEvent per detected interval.
    """
    current: dict[str, float] | None = None

    for key, raw_value in iter_silence_pairs(text):
        try:
            value = float(raw_value)
        except ValueError:
            continue

        if key == KEY_START:
            if current is not None:
                yield _to_event(current)
            current = {KEY_START: value}
        elif key in (KEY_END, KEY_DURATION) and current is not None:
            current[key] = value

    if current is not None:
        yield _to_event(current)


def _to_event(values: dict[str, float]) -> SilenceEvent:
    return SilenceEvent(
        start=values[KEY_START],
        end=values.get(KEY_END),
        duration=values.get(KEY_DURATION),
    )


def detect_overread(report: str) -> bool:
    """Return True when the report shows the overread decode defect."""
    return all(marker in report for marker in OVERREAD_MARKERS)
