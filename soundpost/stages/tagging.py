"""
Metadata Tagging

Attaches cover art and ID3v2.3 text tags to the final MP3.

Steps:
    1. Probe the cover; if wider or taller than 300 px scale it to 300x300
       (<cover stem>_resized.png, consumes the original cover)
    2. Stream-copy audio + cover into <stem>_tagging.mp3 with
       title, [track], artist, album (= title), year and genre "Podcast"

Invariants:
    - Tag text never contains line breaks
    - Audio is stream-copied, never re-encoded here
    - A failed tag run leaves neither the partial output nor a resized cover
"""

import logging
from datetime import date
from pathlib import Path

from soundpost import filtergraph as fg
from soundpost.context import TagRequest
from soundpost.engine import AudioEngine
from soundpost.errors import PipelineError
from soundpost.logging_utils import get_logger
from soundpost.stages.base import consume, require, run_command, stage_guard
from soundpost.utils import derived_path, safe_unlink, strip_newlines


STAGE = "tagging"
GENRE = "Podcast"
COVER_TITLE = "Album cover"
COVER_COMMENT = "Cover (front)"

log = get_logger(__name__)


async def resize_cover(
    engine: AudioEngine,
    cover_path: str | Path,
    *,
    max_size: int = 300,
    logger: logging.Logger | None = None,
) -> Path:
    """Scale the cover down to max_size x max_size when it is larger; else return it unchanged."""
    logger = logger or log
    require(cover_path, "Audio tagging cover image file is missing")
    cover_path = Path(cover_path)

    command = await engine.load(cover_path)
    width = command.asset.width or 0
    height = command.asset.height or 0
    if width <= max_size and height <= max_size:
        return cover_path

    output = derived_path(cover_path, "_resized", ".png")
    command.add_argument("-vf", fg.scale(max_size, max_size).serialize())
    await run_command(
        command,
        output,
        f"Unable to resize cover image file {cover_path} for audio tagging",
        logger,
    )
    logger.info("cover %s resized from %sx%s", cover_path, width, height)

    consume(cover_path, logger=logger)
    return output


def metadata_arguments(tags: TagRequest, year: int) -> list[tuple[str, str]]:
    """Ordered (flag, value) pairs for the text tags."""
    title = strip_newlines(tags.title)
    artist = strip_newlines(tags.artist)

    arguments = [("-metadata", f"title={title}")]
    if tags.track is not None:
        arguments.append(("-metadata", f"track={tags.track}"))
    arguments += [
        ("-metadata", f"artist={artist}"),
        ("-metadata", f"album={title}"),
        ("-metadata", f"year={year}"),
        ("-metadata", f"genre={GENRE}"),
    ]
    return arguments


async def tag_audio(
    engine: AudioEngine,
    path: str | Path,
    tags: TagRequest,
    *,
    max_cover_size: int = 300,
    year: int | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Add cover art and ID3 tags to an MP3.

    Args:
        engine: Engine collaborator
        path: Audio asset to tag
        tags: Cover path and text values
        year: Tag year (defaults to the current year)

    Returns:
        Path of the tagged artifact (<stem>_tagging.mp3).
    """
    logger = logger or log
    require(path, "Audio tagging input file is missing")
    require(tags, "Audio tagging metadata is missing")
    require(tags.cover_path, "Audio tagging cover image file is missing")
    path = Path(path)

    command = await engine.load(path)
    cover = await resize_cover(engine, tags.cover_path, max_size=max_cover_size, logger=logger)

    command.add_input(cover)
    command.add_argument("-map", "0:0")
    command.add_argument("-map", "1:0")
    command.add_argument("-codec", "copy")
    command.add_argument("-id3v2_version", 3)
    command.add_argument("-metadata:s:v", f"title={COVER_TITLE}")
    command.add_argument("-metadata:s:v", f"comment={COVER_COMMENT}")
    for flag, value in metadata_arguments(tags, year or date.today().year):
        command.add_argument(flag, value)

    output = derived_path(path, "_tagging", ".mp3")
    try:
        await run_command(command, output, f"Unable to tag cover to audio file {output}", logger)
    except PipelineError:
        # A resized cover is ours; the original it replaced is already gone
        if cover != Path(tags.cover_path):
            safe_unlink(cover)
        raise

    consume(path, logger=logger)
    return output


async def run(ctx):
    if ctx.request.tags is None:
        return ctx

    with stage_guard(STAGE):
        tagged = await tag_audio(
            ctx.engine,
            ctx.audio_path,
            ctx.request.tags,
            max_cover_size=ctx.config.cover_max_size,
            logger=ctx.logger,
        )
    return ctx.with_audio(tagged)
