"""
Intro Preparation

Fades the intro out over the crossfade window so the episode can start
underneath it:

    afade=t=out:st=<intro - 2*overlay>:d=<2*overlay>

With no overlay the intro is used as-is; its duration is still reported.

Output: <stem>_fadeintro<ext> ; consumes the downloaded intro on success.
"""

import logging
from pathlib import Path

from soundpost import filtergraph as fg
from soundpost.context import SideClip
from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.timing import compute_fade_window
from soundpost.utils import derived_path


STAGE = "intro"

log = get_logger(__name__)


async def prepare_intro(
    engine: AudioEngine,
    path: str | Path,
    overlay_duration: float = 0.0,
    *,
    quality: int = 3,
    logger: logging.Logger | None = None,
) -> SideClip:
    """
    Apply the intro fade-out.

    Returns:
        SideClip with the (possibly faded) path and the intro's duration.
    """
    logger = logger or log
    require(path, "Intro processing input file is missing")
    path = Path(path)

    command = await engine.load(path)
    duration = command.asset.duration
    if not overlay_duration:
        return SideClip(path=path, duration=duration)

    window = compute_fade_window(overlay_duration, duration)
    output = derived_path(path, "_fadeintro")
    command.add_argument("-af", fg.afade("out", window.fade_start, window.fade_duration).serialize())
    command.add_argument("-q:a", quality)
    await run_command(command, output, f"Processing intro fade failed {output}", logger)

    consume(path, logger=logger)
    return SideClip(path=output, duration=duration)


async def run(ctx):
    if ctx.intro_source is None:
        return ctx

    with stage_guard(STAGE):
        clip = await prepare_intro(
            ctx.engine,
            ctx.intro_source,
            ctx.request.overlay_duration,
            quality=ctx.config.audio_quality,
            logger=ctx.logger,
        )
    return ctx.with_updates(intro=clip, intro_source=None)
