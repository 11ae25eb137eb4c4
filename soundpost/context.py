"""
SoundPost v1 EpisodeContext - Pipeline execution context.

Responsibilities:
- Hold all paths, configuration and collaborators for a job
- Carry the current audio artifact from stage to stage
- Serialization for status files and debugging

Invariants:
- Frozen; stages return an updated copy via with_updates()
- audio_path always names the newest artifact of the main episode
- Side clips are explicit optional records, never empty tuples
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from soundpost.config import ProcessingConfig
from soundpost.engine import AudioEngine
from soundpost.logging_utils import get_logger


class SilenceMode(str, Enum):
    """How silence is handled for an episode."""

    NONE = "none"
    TRIM = "trim"
    REMOVE_ALL = "remove-all"


@dataclass(frozen=True)
class SideClip:
    """Intro or outro clip ready for composition."""

    path: Path
    duration: float


@dataclass(frozen=True)
class TagRequest:
    """ID3 metadata and cover art for the final file."""

    cover_path: Path
    title: str
    artist: str
    track: int | None = None


@dataclass(frozen=True)
class EpisodeRequest:
    """What the caller asked the pipeline to do."""

    silence_mode: SilenceMode = SilenceMode.TRIM
    silence_duration: float | None = None
    convert_mp3: bool = True
    intro: str | None = None
    outro: str | None = None
    overlay_duration: float = 0.0
    normalize: bool = True
    tags: TagRequest | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "silence_mode": self.silence_mode.value,
            "silence_duration": self.silence_duration,
            "convert_mp3": self.convert_mp3,
            "intro": self.intro,
            "outro": self.outro,
            "overlay_duration": self.overlay_duration,
            "normalize": self.normalize,
            "tags": None if self.tags is None else {
                "cover_path": str(self.tags.cover_path),
                "title": self.tags.title,
                "artist": self.tags.artist,
                "track": self.tags.track,
            },
        }


@dataclass(frozen=True)
class EpisodeContext:
    """Context passed through all pipeline stages."""

    job_id: str
    job_dir: Path
    work_dir: Path
    audio_path: Path
    engine: AudioEngine
    config: ProcessingConfig = field(default_factory=ProcessingConfig)
    request: EpisodeRequest = field(default_factory=EpisodeRequest)
    logger: logging.Logger = field(default_factory=get_logger)
    noise_db: float | None = None
    overread: bool = False
    intro_source: Path | None = None
    outro_source: Path | None = None
    intro: SideClip | None = None
    outro: SideClip | None = None

    @property
    def effective_noise_db(self) -> float:
        """Noise floor for silence detection after the overread guard ran."""
        if self.noise_db is not None:
            return self.noise_db
        return self.config.silence_noise_db

    def with_updates(self, **changes: Any) -> "EpisodeContext":
        return replace(self, **changes)

    def with_audio(self, path: Path) -> "EpisodeContext":
        return replace(self, audio_path=Path(path))
