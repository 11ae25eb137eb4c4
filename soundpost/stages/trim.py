"""
Head/Tail Silence Trim

Detects silence, plans a single keep-window and trims the asset to it.

    leading silence (start within +/-0.2s)   -> cut up to its end
    trailing silence (ends within 0.2s of EOF) -> cut from its start
    otherwise                                 -> keep (0 .. duration + 1)

Output: <stem>_trimmed<ext> ; consumes the source on success.
"""

import logging
from pathlib import Path

from soundpost.config import ProcessingConfig
from soundpost.context import SilenceMode
from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger
from soundpost.planning import TrimPlan, plan_trim
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.stages.detect import detect_silence
from soundpost.utils import derived_path


STAGE = "trim"

log = get_logger(__name__)


async def remove_silence(
    engine: AudioEngine,
    path: str | Path,
    *,
    noise_db: float | None = None,
    config: ProcessingConfig | None = None,
    logger: logging.Logger | None = None,
) -> tuple[Path, TrimPlan]:
    """
    Trim leading and trailing silence.

    Args:
        engine: Engine collaborator
        path: Source asset
        noise_db: Detection noise floor (defaults to config.silence_noise_db)

    Returns:
        Tuple of (trimmed path, plan used).
    """
    logger = logger or log
    config = config or ProcessingConfig()
    require(path, "Remove silence input file is missing")
    path = Path(path)

    report = await detect_silence(
        engine,
        path,
        noise_db=config.silence_noise_db if noise_db is None else noise_db,
        min_duration=config.silence_min_duration,
        logger=logger,
    )
    plan = plan_trim(
        report.events(),
        report.asset.duration,
        tolerance=config.trim_tolerance,
        padding=config.tail_padding,
    )
    logger.info("trim plan for %s: start=%s end=%s", path, plan.start, plan.end)

    output = derived_path(path, "_trimmed")
    command = await engine.load(path)
    command.add_argument("-af", plan.to_filter())
    command.add_argument("-q:a", config.audio_quality)
    await run_command(command, output, f"Unable to trim audio file {path}", logger)

    consume(path, logger=logger)
    return output, plan


async def run(ctx):
    """Head/tail trim when the request asks for it."""
    if ctx.request.silence_mode != SilenceMode.TRIM:
        return ctx

    with stage_guard(STAGE):
        trimmed, _ = await remove_silence(
            ctx.engine,
            ctx.audio_path,
            noise_db=ctx.effective_noise_db,
            config=ctx.config,
            logger=ctx.logger,
        )
    return ctx.with_audio(trimmed)
