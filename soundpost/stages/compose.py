"""
Intro/Outro Compositor

Mixes the prepared side clips with the main episode. The main asset is
always input 0; the intro (if any) is input 1; the outro follows.

    intro only:  [0]adelay=I|..[a];[1][a]amix=2
    outro only:  [1]adelay=O|..[a];[0][a]amix=2
    both:        [0]adelay=I|..[a];[2]adelay=O|..[b];[1][a][b]amix=3

I = intro delay (the episode starts under the intro's fade-out),
O = outro delay (the outro starts under the episode's tail).

Invariants:
    - Neither side clip present: pass-through, no engine command
    - On success main, intro and outro are all consumed
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from soundpost import filtergraph as fg
from soundpost.context import SideClip
from soundpost.engine import AudioEngine
from soundpost.errors import CompositionError
from soundpost.filtergraph import FilterGraph
from soundpost.logging_utils import get_logger
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.timing import (
    DELAY_CHANNELS,
    compute_channel_delays,
    compute_intro_delay,
    compute_outro_delay,
)
from soundpost.utils import derived_path


STAGE = "compose"

log = get_logger(__name__)


@dataclass(frozen=True)
class CompositionPlan:
    """Delays (seconds) and the mixing graph for one composition."""

    graph: FilterGraph
    intro_delay: float | None = None
    outro_delay: float | None = None

    def to_filter(self) -> str:
        return self.graph.serialize()


def plan_composition(
    main_duration: float,
    intro: SideClip | None,
    outro: SideClip | None,
    overlay_duration: float = 0.0,
    *,
    channels: int = DELAY_CHANNELS,
) -> CompositionPlan | None:
    """
    Build the adelay/amix graph for the present side clips.

    Returns:
        CompositionPlan, or None when neither clip is present.

    Raises:
        CompositionError: If the overlay would start a clip before time zero
    """
    if intro is None and outro is None:
        return None

    def delays(side: str, delay: float):
        if delay < 0:
            raise CompositionError(side, delay, overlay_duration)
        return compute_channel_delays(delay, channels)

    if outro is None:
        intro_delay = compute_intro_delay(intro.duration, overlay_duration)
        graph = FilterGraph((
            fg.adelay(delays("intro", intro_delay), inputs=("0",), outputs=("a",)),
            fg.amix(2, inputs=("1", "a")),
        ))
        return CompositionPlan(graph=graph, intro_delay=intro_delay)

    if intro is None:
        outro_delay = compute_outro_delay(main_duration, overlay_duration)
        graph = FilterGraph((
            fg.adelay(delays("outro", outro_delay), inputs=("1",), outputs=("a",)),
            fg.amix(2, inputs=("0", "a")),
        ))
        return CompositionPlan(graph=graph, outro_delay=outro_delay)

    intro_delay = compute_intro_delay(intro.duration, overlay_duration)
    outro_delay = compute_outro_delay(main_duration, overlay_duration, intro.duration)
    graph = FilterGraph((
        fg.adelay(delays("intro", intro_delay), inputs=("0",), outputs=("a",)),
        fg.adelay(delays("outro", outro_delay), inputs=("2",), outputs=("b",)),
        fg.amix(3, inputs=("1", "a", "b")),
    ))
    return CompositionPlan(graph=graph, intro_delay=intro_delay, outro_delay=outro_delay)


async def compose_intro_outro(
    engine: AudioEngine,
    path: str | Path,
    intro: SideClip | None = None,
    outro: SideClip | None = None,
    overlay_duration: float = 0.0,
    *,
    channels: int = DELAY_CHANNELS,
    quality: int = 3,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Mix intro and/or outro into the main asset.

    Args:
        engine: Engine collaborator
        path: Main episode asset
        intro: Prepared intro clip, or None
        outro: Prepared outro clip, or None
        overlay_duration: Crossfade length in seconds (0 disables overlap)

    Returns:
        Path of the composed artifact, or `path` when no clip is present.
    """
    logger = logger or log
    require(path, "Main audio file is missing")
    path = Path(path)

    if intro is None and outro is None:
        logger.info("intro and outro both absent for %s", path)
        return path

    command = await engine.load(path)
    plan = plan_composition(
        command.asset.duration, intro, outro, overlay_duration, channels=channels
    )
    logger.info(
        "composing %s (intro delay=%s, outro delay=%s)",
        path,
        plan.intro_delay,
        plan.outro_delay,
    )

    for clip in (intro, outro):
        if clip is not None:
            command.add_input(clip.path)
    command.add_argument("-filter_complex", plan.to_filter())
    command.add_argument("-q:a", quality)

    output = derived_path(path, "_concat")
    await run_command(command, output, f"Unable to concat intro/outro to audio file {path}", logger)

    consume(
        path,
        intro.path if intro is not None else None,
        outro.path if outro is not None else None,
        logger=logger,
    )
    return output


async def run(ctx):
    if ctx.intro is None and ctx.outro is None:
        return ctx

    with stage_guard(STAGE):
        composed = await compose_intro_outro(
            ctx.engine,
            ctx.audio_path,
            ctx.intro,
            ctx.outro,
            ctx.request.overlay_duration,
            channels=ctx.config.delay_channels,
            quality=ctx.config.audio_quality,
            logger=ctx.logger,
        )
    return ctx.with_updates(audio_path=composed, intro=None, outro=None)
