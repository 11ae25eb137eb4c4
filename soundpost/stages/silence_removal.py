"""
Multi-Gap Silence Removal

Cuts every detected silence out of an asset and concatenates what is left:

    [0]atrim=start=0.000:end=S1[a1];[0]atrim=...[a2];...;[a1][a2]...concat=n=N:v=0:a=1

No detected silence is a successful pass-through (same path returned).

Output: <stem>_silence_removed<ext> ; consumes the source on success.
"""

import logging
from pathlib import Path

from soundpost.config import ProcessingConfig
from soundpost.context import SilenceMode
from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger
from soundpost.planning import plan_keep_zones
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.stages.detect import detect_silence
from soundpost.utils import derived_path


STAGE = "silence_removal"

log = get_logger(__name__)


async def remove_all_silence(
    engine: AudioEngine,
    path: str | Path,
    *,
    min_duration: float | None = None,
    noise_db: float | None = None,
    config: ProcessingConfig | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Remove every silence of at least `min_duration` seconds.

    Args:
        engine: Engine collaborator
        path: Source asset
        min_duration: Shortest silence to cut (defaults to config)
        noise_db: Detection noise floor (defaults to config)

    Returns:
        Path of the shortened artifact, or `path` when nothing was cut.
    """
    logger = logger or log
    config = config or ProcessingConfig()
    require(path, "Remove all silence input file is missing")
    path = Path(path)

    report = await detect_silence(
        engine,
        path,
        noise_db=config.silence_noise_db if noise_db is None else noise_db,
        min_duration=config.silence_min_duration if min_duration is None else min_duration,
        logger=logger,
    )
    plan = plan_keep_zones(
        report.events(),
        report.asset.duration,
        min_length=config.zone_min_length,
        padding=config.tail_padding,
    )
    if plan is None:
        logger.info("no silence found in %s, nothing removed", path)
        return path

    logger.info("keeping %d zones of %s", plan.count, path)

    output = derived_path(path, "_silence_removed")
    command = await engine.load(path)
    command.add_argument("-filter_complex", plan.to_filter())
    command.add_argument("-q:a", config.audio_quality)
    await run_command(command, output, f"Unable to remove silence from {path}", logger)

    consume(path, logger=logger)
    return output


async def run(ctx):
    if ctx.request.silence_mode != SilenceMode.REMOVE_ALL:
        return ctx

    with stage_guard(STAGE):
        result = await remove_all_silence(
            ctx.engine,
            ctx.audio_path,
            min_duration=ctx.request.silence_duration,
            noise_db=ctx.effective_noise_db,
            config=ctx.config,
            logger=ctx.logger,
        )
    return ctx.with_audio(result)
