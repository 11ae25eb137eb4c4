"""
Outro Preparation

Fades the outro in across the crossfade window and out at its end:

    afade=t=in:st=0:d=<2*overlay>,afade=t=out:st=<outro - 2*overlay>:d=<2*overlay>

With no overlay the outro is used as-is; its duration is still reported.

Output: <stem>_fadeoutro<ext> ; consumes the downloaded outro on success.
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


STAGE = "outro"

log = get_logger(__name__)


async def prepare_outro(
    engine: AudioEngine,
    path: str | Path,
    overlay_duration: float = 0.0,
    *,
    quality: int = 3,
    logger: logging.Logger | None = None,
) -> SideClip:
    """Apply the outro fade-in and fade-out; see module docstring."""
    logger = logger or log
    require(path, "Outro processing input file is missing")
    path = Path(path)

    command = await engine.load(path)
    duration = command.asset.duration
    if not overlay_duration:
        return SideClip(path=path, duration=duration)

    window = compute_fade_window(overlay_duration, duration)
    chain = fg.filter_chain(
        fg.afade("in", 0, overlay_duration * 2),
        fg.afade("out", window.fade_start, window.fade_duration),
    )
    output = derived_path(path, "_fadeoutro")
    command.add_argument("-af", chain)
    command.add_argument("-q:a", quality)
    await run_command(command, output, f"Processing outro fade failed {output}", logger)

    consume(path, logger=logger)
    return SideClip(path=output, duration=duration)


async def run(ctx):
    if ctx.outro_source is None:
        return ctx

    with stage_guard(STAGE):
        clip = await prepare_outro(
            ctx.engine,
            ctx.outro_source,
            ctx.request.overlay_duration,
            quality=ctx.config.audio_quality,
            logger=ctx.logger,
        )
    return ctx.with_updates(outro=clip, outro_source=None)
