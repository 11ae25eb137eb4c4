"""
Intro/Outro Fetch

Concurrent fan-out of the side-clip downloads next to the main asset:

    <stem>_intro.<ext>   <stem>_outro.<ext>

Invariants:
    - Identical intro and outro sources are fetched once; the outro gets a
      copy so each side clip has a single owner
    - All fetches are awaited before any result is used
    - Any failure removes the siblings that did arrive and raises
      DownloadError with every error attached
"""

import asyncio
import logging
import shutil
from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path

from soundpost.download import PathResolver, create_session, fetch_asset
from soundpost.errors import DownloadError
from soundpost.logging_utils import get_logger
from soundpost.stages.base import require, stage_guard
from soundpost.utils import safe_unlink


STAGE = "fetch"

Fetcher = Callable[[str, PathResolver], Awaitable[Path]]

log = get_logger(__name__)


def side_clip_path(reference_path: str | Path, side: str, file_type: str) -> Path:
    """work/episode.mp3 + ("intro", "wav") -> work/episode_intro.wav"""
    reference = Path(reference_path)
    return reference.with_name(f"{reference.stem}_{side}.{file_type}")


async def fetch_side_clips(
    intro_url: str | None,
    outro_url: str | None,
    reference_path: str | Path,
    fetcher: Fetcher,
    *,
    logger: logging.Logger | None = None,
) -> tuple[Path | None, Path | None]:
    """
    Fetch intro and outro concurrently.

    Args:
        intro_url: Intro source (URL or local path), or None
        outro_url: Outro source (URL or local path), or None
        reference_path: Asset whose directory and stem name the clips
        fetcher: async (url, path_resolver) -> Path

    Returns:
        (intro_path, outro_path); a side that was not requested is None.

    Raises:
        MissingInputError: If reference_path is empty
        DownloadError: If any fetch fails
    """
    logger = logger or log
    require(reference_path, "Saving reference path is missing")

    urls: dict[str, str] = {}
    if intro_url:
        urls["intro"] = intro_url
    if outro_url and outro_url != intro_url:
        urls["outro"] = outro_url
    shared = bool(intro_url) and outro_url == intro_url

    if not urls:
        return None, None

    sides = list(urls)
    results = await asyncio.gather(
        *(
            fetcher(urls[side], partial(side_clip_path, reference_path, side))
            for side in sides
        ),
        return_exceptions=True,
    )

    fetched: dict[str, Path] = {}
    errors: list[BaseException] = []
    for side, result in zip(sides, results):
        if isinstance(result, BaseException):
            logger.warning("fetching %s from %s failed: %s", side, urls[side], result)
            errors.append(result)
        else:
            fetched[side] = Path(result)

    if errors:
        for path in fetched.values():
            safe_unlink(path)
        raise DownloadError(urls, errors) from errors[0]

    if shared:
        intro_path = fetched["intro"]
        outro_path = side_clip_path(reference_path, "outro", intro_path.suffix.lstrip("."))
        try:
            await asyncio.to_thread(shutil.copy2, intro_path, outro_path)
        except OSError as e:
            safe_unlink(intro_path)
            raise DownloadError(urls, [e]) from e
        fetched["outro"] = outro_path

    return fetched.get("intro"), fetched.get("outro")


async def run(ctx):
    request = ctx.request
    if not request.intro and not request.outro:
        return ctx

    with stage_guard(STAGE):
        async with create_session(ctx.config.download_timeout) as session:
            fetcher = partial(
                _fetch_with_session,
                session,
                chunk_size=ctx.config.download_chunk_size,
                logger=ctx.logger,
            )
            intro, outro = await fetch_side_clips(
                request.intro,
                request.outro,
                ctx.audio_path,
                fetcher,
                logger=ctx.logger,
            )
    return ctx.with_updates(intro_source=intro, outro_source=outro)


async def _fetch_with_session(session, url, path_resolver, *, chunk_size, logger):
    return await fetch_asset(session, url, path_resolver, chunk_size=chunk_size, logger=logger)
