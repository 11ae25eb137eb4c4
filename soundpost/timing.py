"""
SoundPost v1 Fade/Delay Calculator

Pure numeric helpers for fade windows, intro/outro delays and the
per-channel delay strings fed to the engine's adelay filter.

Invariants:
    - No I/O, fully deterministic
    - Fade starts are never negative (clamped to 0)
    - Channel delays are non-negative integer milliseconds
    - Rounding is half-up at the stated precision
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal


# adelay cannot delay "all" channels inside -filter_complex, so the value is
# repeated explicitly: 1 primary + 8 auxiliary channels
DELAY_CHANNELS = 9


def _round_half_up(value: float, places: str) -> float:
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def round_ms(value: float) -> float:
    """Round seconds to millisecond precision (3 decimals, half-up)."""
    return _round_half_up(value, "0.001")


def round_2(value: float) -> float:
    """Round to 2 decimals, half-up."""
    return _round_half_up(value, "0.01")


def format_seconds(value: float) -> str:
    """Render seconds for a filter argument, e.g. 1.2 -> '1.200'."""
    return f"{value:.3f}"


@dataclass(frozen=True)
class FadeWindow:
    """Fade start and length, both in seconds."""

    fade_start: float
    fade_duration: float


@dataclass(frozen=True)
class ChannelDelaySet:
    """One delay value repeated across every channel slot."""

    delay_ms: int
    channels: int = DELAY_CHANNELS

    @property
    def values(self) -> tuple[int, ...]:
        return (self.delay_ms,) * self.channels

    def __str__(self) -> str:
        return "|".join(str(v) for v in self.values)


def compute_fade_window(overlay_duration: float, clip_duration: float) -> FadeWindow:
    """
    Compute the fade-out window for a side clip.

    Args:
        overlay_duration: Crossfade length in seconds
        clip_duration: Length of the clip being faded

    Returns:
        FadeWindow with fade_duration = overlay*2 and the start placed so the
        fade ends with the clip (clamped at 0).
    """
    fade_duration = overlay_duration * 2
    fade_start = round_2(clip_duration - fade_duration)
    if fade_start < 0:
        fade_start = 0.0
    return FadeWindow(fade_start=fade_start, fade_duration=fade_duration)


def compute_channel_delays(delay_seconds: float, channels: int = DELAY_CHANNELS) -> ChannelDelaySet:
    """
    Convert a delay in seconds to a per-channel millisecond delay set.

    Raises:
        ValueError: If the delay is negative
    """
    delay_ms = math.floor(delay_seconds * 1000)
    if delay_ms < 0:
        raise ValueError(f"Delay must be non-negative, got {delay_seconds}s")
    return ChannelDelaySet(delay_ms=delay_ms, channels=channels)


def compute_intro_delay(intro_duration: float, overlay_duration: float) -> float:
    """Offset of the main audio behind the intro; overlaps only when intro > overlay."""
    if overlay_duration and intro_duration > overlay_duration:
        return intro_duration - overlay_duration
    return intro_duration


def compute_outro_delay(
    main_duration: float,
    overlay_duration: float,
    intro_duration: float | None = None,
) -> float:
    """
    Offset at which the outro starts.

    Args:
        main_duration: Main asset length
        overlay_duration: Crossfade length (0 disables overlap)
        intro_duration: Intro length when an intro is also present

    Returns:
        Outro-only: main - overlay. With intro: intro + main - 2*overlay.
    """
    if intro_duration is None:
        if overlay_duration:
            return main_duration - overlay_duration
        return main_duration

    if overlay_duration:
        return intro_duration + main_duration - 2 * overlay_duration
    return intro_duration + main_duration
