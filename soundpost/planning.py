"""
SoundPost v1 Silence Planners

Trim Planner:
    One keep-window for head/tail trimming, derived from the first and last
    silence events.

Multi-Gap Planner:
    Ordered keep-zones between every detected silence, plus the concat
    filter graph that stitches them back together.

Invariants:
    - Every zone has end > start (degenerate zones are bumped by 0.001s)
    - The final keep boundary is past the true end (duration + padding) so
      the engine never clips on float rounding
    - Trim points are rounded to millisecond precision
    - No silence events means no plan (pass-through)
"""

from collections.abc import Iterable
from dataclasses import dataclass

from soundpost import filtergraph as fg
from soundpost.filtergraph import FilterGraph
from soundpost.silence import SilenceEvent
from soundpost.timing import format_seconds, round_ms


# Detection jitter tolerance around true zero / true end (seconds)
TRIM_TOLERANCE = 0.2
# Minimum zone length when computed bounds collide (seconds)
ZONE_MIN_LENGTH = 0.001
# Keep-everything boundary past the end of the asset (seconds)
TAIL_PADDING = 1.0

ZONE_LABEL_PREFIX = "a"
SOURCE_LABEL = "0"


# =============================================================================
# Trim Planner
# =============================================================================


@dataclass(frozen=True)
class TrimPlan:
    """Single keep-window (seconds)."""

    start: float
    end: float

    def to_filter(self) -> str:
        return fg.atrim(self.start, self.end).serialize()


def plan_trim(
    events: Iterable[SilenceEvent],
    duration: float,
    *,
    tolerance: float = TRIM_TOLERANCE,
    padding: float = TAIL_PADDING,
) -> TrimPlan:
    """
    Derive head/tail trim points.

    Args:
        events: Silence events for the asset, in order
        duration: Total asset duration in seconds
        tolerance: Jitter window around 0 and around the asset end
        padding: Added to duration when the tail is kept

    Returns:
        TrimPlan. start is the end of a leading silence (or 0); end is the
        start of a trailing silence (or duration + padding).
    """
    events = list(events)

    start = 0.0
    if events:
        first = events[0]
        if -tolerance <= first.start <= tolerance and first.end is not None:
            start = round_ms(first.end)

    end = duration + padding
    # A single event can only be leading silence
    if len(events) > 1:
        last = events[-1]
        if last.end is not None and (duration - last.end) < tolerance:
            end = round_ms(last.start)

    return TrimPlan(start=start, end=end)


# =============================================================================
# Multi-Gap Planner
# =============================================================================


@dataclass(frozen=True)
class KeepZone:
    """A window that survives silence removal."""

    start: float
    end: float
    label: str

    def as_tuple(self) -> tuple[float, float]:
        return (self.start, self.end)

    def __str__(self) -> str:
        return f"[{format_seconds(self.start)}, {format_seconds(self.end)}]"


@dataclass(frozen=True)
class KeepZonePlan:
    """Ordered keep-zones and the filter graph that concatenates them."""

    zones: tuple[KeepZone, ...]
    graph: FilterGraph

    @property
    def count(self) -> int:
        """Input count for the concat node."""
        return len(self.zones)

    def to_filter(self) -> str:
        return self.graph.serialize()


def plan_keep_zones(
    events: Iterable[SilenceEvent],
    duration: float,
    *,
    min_length: float = ZONE_MIN_LENGTH,
    padding: float = TAIL_PADDING,
) -> KeepZonePlan | None:
    """
    Plan keep-zones between silences.

    Args:
        events: Silence events for the asset, in order
        duration: Total asset duration in seconds
        min_length: Bump applied when a zone would be empty or negative
        padding: Added to duration for the final zone end

    Returns:
        KeepZonePlan, or None when there is no silence to remove.
    """
    bounds: list[tuple[float, float]] = []
    cursor = 0.0
    for event in events:
        zone_start = round_ms(cursor)
        zone_end = round_ms(event.start)
        if zone_start >= zone_end:
            zone_end = round_ms(zone_start + min_length)
        bounds.append((zone_start, zone_end))
        # Silence running into EOF has no end; nothing after it is kept
        cursor = event.end if event.end is not None else duration

    if not bounds:
        return None

    bounds.append((round_ms(cursor), duration + padding))

    zones = tuple(
        KeepZone(start=start, end=end, label=f"{ZONE_LABEL_PREFIX}{index}")
        for index, (start, end) in enumerate(bounds, start=1)
    )
    return KeepZonePlan(zones=zones, graph=build_concat_graph(zones))


def build_concat_graph(zones: tuple[KeepZone, ...]) -> FilterGraph:
    """One atrim per zone feeding a single audio-only concat node."""
    graph = FilterGraph()
    for zone in zones:
        graph = graph.add(
            fg.atrim(zone.start, zone.end, inputs=(SOURCE_LABEL,), outputs=(zone.label,))
        )
    return graph.add(fg.concat(len(zones), inputs=tuple(zone.label for zone in zones)))
