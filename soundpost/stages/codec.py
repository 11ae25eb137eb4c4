"""
Codec Repair

Re-encodes an asset to MP3 (64 kbps, -q:a 3). Files already carrying the
mp3 codec pass through untouched unless conversion is forced (overread).

Output: <stem>_mp3codec.mp3 ; consumes the source on success.
"""

import logging
from pathlib import Path

from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.utils import derived_path


STAGE = "codec"
TARGET_CODEC = "mp3"

log = get_logger(__name__)


async def set_mp3_codec(
    engine: AudioEngine,
    path: str | Path,
    *,
    force: bool = False,
    bitrate_kbps: int = 64,
    quality: int = 3,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Convert an asset to MP3 when needed.

    Args:
        engine: Engine collaborator
        path: Source asset
        force: Re-encode even when the codec is already mp3

    Returns:
        Path of the MP3 artifact (the source path on pass-through).
    """
    logger = logger or log
    require(path, "Set mp3 codec input file is missing")
    path = Path(path)

    command = await engine.load(path)
    if not force and command.asset.codec == TARGET_CODEC:
        logger.debug("codec already %s for %s", TARGET_CODEC, path)
        return path

    output = derived_path(path, "_mp3codec", ".mp3")
    command.set_audio_codec(TARGET_CODEC).set_audio_bitrate(bitrate_kbps)
    command.add_argument("-q:a", quality)
    await run_command(command, output, "Setting MP3 codec failed", logger)

    consume(path, logger=logger)
    return output


async def run(ctx):
    """Pass-through unless the request asks for MP3 output."""
    if not ctx.request.convert_mp3:
        return ctx

    with stage_guard(STAGE):
        converted = await set_mp3_codec(
            ctx.engine,
            ctx.audio_path,
            bitrate_kbps=ctx.config.mp3_bitrate_kbps,
            quality=ctx.config.audio_quality,
            logger=ctx.logger,
        )
    return ctx.with_audio(converted)
