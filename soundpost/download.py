"""
SoundPost v1 Download Collaborator

Fetches one intro/outro asset into the job's work directory.

    path = await fetch_asset(session, "https://host/intro.mp3",
                             lambda ext: work / f"episode_intro.{ext}")

Responsibilities:
- Stream http(s) URLs with aiohttp into a temporary .part file (aiofiles)
- Derive the file type from Content-Type, falling back to the URL suffix
- Copy local paths so the pipeline owns (and later deletes) its copy

Invariants:
- The final path only appears once the transfer finished
- A failed transfer leaves no .part file behind
"""

import asyncio
import logging
import mimetypes
import shutil
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlparse

import aiofiles
import aiohttp

from soundpost.logging_utils import get_logger
from soundpost.utils import safe_unlink


DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_TIMEOUT = 300.0
FALLBACK_TYPE = "mp3"

# Content types that mimetypes maps inconsistently across platforms
AUDIO_TYPES = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/x-wav": "wav",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-m4a": "m4a",
    "audio/mp4": "m4a",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
}

PathResolver = Callable[[str], Path]

log = get_logger(__name__)


def is_remote(url: str) -> bool:
    return urlparse(str(url)).scheme in ("http", "https")


def file_type_for(url: str, content_type: str | None = None) -> str:
    """
    Pick the extension (without dot) for a fetched asset.

    Args:
        url: Source URL or path
        content_type: Response Content-Type header, if any

    Returns:
        e.g. "mp3"; falls back to the URL suffix, then to "mp3".
    """
    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime in AUDIO_TYPES:
            return AUDIO_TYPES[mime]
        guessed = mimetypes.guess_extension(mime)
        if guessed and mime.startswith("audio/"):
            return guessed.lstrip(".")

    suffix = Path(urlparse(str(url)).path).suffix.lstrip(".").lower()
    return suffix or FALLBACK_TYPE


async def fetch_asset(
    session: aiohttp.ClientSession | None,
    url: str,
    path_resolver: PathResolver,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    logger: logging.Logger | None = None,
) -> Path:
    """
    Fetch a URL (or copy a local path) to the location chosen by path_resolver.

    Raises:
        aiohttp.ClientError: On HTTP or connection errors
        FileNotFoundError: If a local source does not exist
    """
    logger = logger or log

    if not is_remote(url):
        source = Path(url)
        if not source.is_file():
            raise FileNotFoundError(f"Local asset not found: {source}")
        target = Path(path_resolver(file_type_for(url)))
        await asyncio.to_thread(shutil.copy2, source, target)
        logger.info("copied %s to %s", source, target)
        return target

    if session is None:
        raise ValueError(f"An HTTP session is required to fetch {url}")

    logger.info("DOWNLOADING %s", url)
    async with session.get(url, allow_redirects=True) as response:
        response.raise_for_status()
        target = Path(path_resolver(file_type_for(url, response.headers.get("Content-Type"))))
        temp_file = target.with_name(f"{target.name}.part")
        try:
            async with aiofiles.open(temp_file, "wb") as handle:
                async for chunk in response.content.iter_chunked(chunk_size):
                    await handle.write(chunk)
            temp_file.replace(target)
        finally:
            safe_unlink(temp_file)

    logger.info("DOWNLOADED %s to %s", url, target)
    return target


def create_session(timeout: float = DEFAULT_TIMEOUT) -> aiohttp.ClientSession:
    """Session used for one pipeline run; the caller closes it."""
    return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))
