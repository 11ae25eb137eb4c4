"""
Overread Guard

Some source files carry a decode-misalignment defect ("overread") that
skews amplitude readings. The guard runs a default silence analysis only
to inspect its report.

When the defect is present the pipeline:
    - forces MP3 re-encoding before any trimming
    - lowers the detection noise floor from -60 dB to -50 dB

Invariants:
    - The guard itself has no side effects; run(ctx) applies the remedy
"""

import logging
from pathlib import Path

from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger
from soundpost.silence import detect_overread
from soundpost.stages.base import require, stage_guard
from soundpost.stages.codec import set_mp3_codec
from soundpost.stages.detect import detect_silence


STAGE = "overread"

log = get_logger(__name__)


async def has_overread(
    engine: AudioEngine,
    path: str | Path,
    *,
    logger: logging.Logger | None = None,
) -> bool:
    """Return True when the asset's diagnostic report shows the overread defect."""
    require(path, "Overread input file is missing")
    report = await detect_silence(engine, path, logger=logger)
    return detect_overread(report.text)


async def run(ctx):
    """Detect overread; on a hit force MP3 conversion and relax the noise floor."""
    with stage_guard(STAGE):
        overread = await has_overread(ctx.engine, ctx.audio_path, logger=ctx.logger)
        if not overread:
            return ctx.with_updates(overread=False)

        ctx.logger.info("OVERREAD detected in %s", ctx.audio_path)
        converted = await set_mp3_codec(
            ctx.engine,
            ctx.audio_path,
            force=True,
            bitrate_kbps=ctx.config.mp3_bitrate_kbps,
            quality=ctx.config.audio_quality,
            logger=ctx.logger,
        )
        ctx.logger.info("source replaced after overread: %s", converted)

    return ctx.with_updates(
        audio_path=converted,
        overread=True,
        noise_db=ctx.config.overread_noise_db,
    )
