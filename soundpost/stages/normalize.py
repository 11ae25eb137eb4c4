"""
Loudness Normalization

Single-pass loudnorm with fixed measured values, resampled to 44.1 kHz:

    -af loudnorm=I=-14:TP=-2:LRA=11:measured_I=-19.5:...:linear=true:print_format=summary
    -ar 44.1k -q:a 3

Output: <stem>_set_volume<ext> ; consumes the source on success.
"""

import logging
from pathlib import Path

from soundpost.config import LoudnessSettings
from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.utils import derived_path


STAGE = "normalize"

log = get_logger(__name__)


async def normalize_volume(
    engine: AudioEngine,
    path: str | Path,
    loudness: LoudnessSettings | None = None,
    *,
    sample_rate: str = "44.1k",
    quality: int = 3,
    logger: logging.Logger | None = None,
) -> Path:
    logger = logger or log
    loudness = loudness or LoudnessSettings()
    require(path, "Normalize volume input file is missing")
    path = Path(path)

    command = await engine.load(path)
    command.add_argument("-af", loudness.to_filter().serialize())
    command.add_argument("-ar", sample_rate)
    command.add_argument("-q:a", quality)

    output = derived_path(path, "_set_volume")
    await run_command(command, output, f"Unable to normalize volume for {path}", logger)

    consume(path, logger=logger)
    return output


async def run(ctx):
    if not ctx.request.normalize:
        return ctx

    with stage_guard(STAGE):
        normalized = await normalize_volume(
            ctx.engine,
            ctx.audio_path,
            ctx.config.loudness,
            sample_rate=ctx.config.output_sample_rate,
            quality=ctx.config.audio_quality,
            logger=ctx.logger,
        )
    return ctx.with_audio(normalized)
