"""
Silence Detection (analysis only)

Runs the engine's silencedetect filter with a null muxer and returns the
probed asset together with the combined diagnostic text. Used by the
overread guard, the trim stage and the silence-removal stage.

Invariants:
    - Never writes or deletes files
    - Thresholds come from the caller (defaults: -60 dB, 1 s)
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from soundpost import filtergraph as fg
from soundpost.engine import NULL_OUTPUT, AudioAsset, AudioEngine
from soundpost.errors import EngineRunError
from soundpost.logging_utils import get_logger
from soundpost.silence import SilenceEvent, parse_silence_events
from soundpost.stages.base import require


DEFAULT_NOISE_DB = -60.0
DEFAULT_MIN_DURATION = 1.0

log = get_logger(__name__)


@dataclass(frozen=True)
class SilenceReport:
    """Probed asset plus the engine's diagnostic text."""

    asset: AudioAsset
    text: str

    def events(self) -> list[SilenceEvent]:
        return list(parse_silence_events(self.text))


async def detect_silence(
    engine: AudioEngine,
    path: str | Path,
    *,
    noise_db: float = DEFAULT_NOISE_DB,
    min_duration: float = DEFAULT_MIN_DURATION,
    logger: logging.Logger | None = None,
) -> SilenceReport:
    """
    Run silence detection on an asset.

    Raises:
        MissingInputError: If no path is given
        EngineLoadError: If the asset cannot be loaded
        EngineRunError: If the analysis run fails
    """
    logger = logger or log
    require(path, "Detect silence input file is missing")

    command = await engine.load(path)

    command.add_argument("-af", fg.silencedetect(noise_db, min_duration).serialize())
    command.add_argument("-f", "null")

    try:
        report = await command.run(NULL_OUTPUT)
    except EngineRunError as e:
        raise EngineRunError(
            path, f"Unable to read silence detect. {e.reason}", e.stderr
        ) from e

    logger.debug("silence detect finished for %s (n=%sdB, d=%ss)", path, noise_db, min_duration)
    return SilenceReport(asset=command.asset, text=report.text)
