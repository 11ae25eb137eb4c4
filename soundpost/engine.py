"""
SoundPost v1 Engine Collaborator

FFmpeg/FFprobe wrapper exposing the only shape the stages rely on:

    command = await engine.load(path)          # probe, or EngineLoadError
    command.add_argument("-af", "...")         # order-preserving
    command.set_audio_codec("mp3").set_audio_bitrate(64)
    report = await command.run(output_path)    # or EngineRunError

Invariants:
    - One engine invocation = one suspension point (asyncio subprocess)
    - Argument order is exactly the order of add_argument() calls
    - Commands always overwrite their output and hide the banner
    - stdout and stderr are both returned; diagnostics live in stderr
"""

import asyncio
import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from soundpost.errors import EngineLoadError, EngineRunError
from soundpost.logging_utils import get_logger

__all__ = [
    "AudioAsset",
    "AudioEngine",
    "EngineCommand",
    "EngineReport",
    "FFmpegEngine",
    "NULL_OUTPUT",
]


# Output target for analysis-only runs (combined with "-f null")
NULL_OUTPUT = "-"


@dataclass(frozen=True)
class AudioAsset:
    """Probed media file."""

    path: Path
    duration: float
    codec: str | None = None
    channels: int | None = None
    sample_rate: int | None = None
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class EngineReport:
    """Combined output of a finished engine run."""

    output_path: str
    stdout: str
    stderr: str

    @property
    def text(self) -> str:
        return f"{self.stdout}\n{self.stderr}"


class AudioEngine(Protocol):
    async def load(self, path: str | Path) -> "EngineCommand":
        ...


class EngineCommand:
    """Accumulates arguments for one engine invocation on a loaded asset."""

    def __init__(self, engine: "FFmpegEngine", asset: AudioAsset):
        self.engine = engine
        self.asset = asset
        self.arguments: list[str] = []
        self.audio_codec: str | None = None
        self.audio_bitrate: int | None = None

    @property
    def metadata(self) -> AudioAsset:
        return self.asset

    def add_argument(self, flag: str, value: Any = None) -> "EngineCommand":
        self.arguments.append(flag)
        if value is not None:
            self.arguments.append(str(value))
        return self

    def add_input(self, path: str | Path) -> "EngineCommand":
        return self.add_argument("-i", path)

    def set_audio_codec(self, name: str) -> "EngineCommand":
        self.audio_codec = name
        return self

    def set_audio_bitrate(self, kbps: int) -> "EngineCommand":
        self.audio_bitrate = kbps
        return self

    def argv(self, output_path: str | Path) -> list[str]:
        """Full command line for the given output."""
        command = [
            self.engine.ffmpeg_path,
            "-hide_banner",
            "-y",
            "-i",
            str(self.asset.path),
            *self.arguments,
        ]
        if self.audio_codec:
            command.extend(["-acodec", self.audio_codec])
        if self.audio_bitrate:
            command.extend(["-b:a", f"{self.audio_bitrate}k"])
        command.append(str(output_path))
        return command

    async def run(self, output_path: str | Path) -> EngineReport:
        return await self.engine.execute(self.argv(output_path), str(output_path))


class FFmpegEngine:
    """Asynchronous wrapper around the ffmpeg and ffprobe binaries."""

    def __init__(
        self,
        *,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        logger: logging.Logger | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.logger = logger or get_logger(__name__)

    async def load(self, path: str | Path) -> EngineCommand:
        """
        Probe an asset and return a command bound to it.

        Raises:
            EngineLoadError: If the file is missing, unreadable or not media
        """
        path = Path(path)
        if not path.is_file():
            raise EngineLoadError(path, "File does not exist.")

        command = [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]
        try:
            returncode, stdout, stderr = await _communicate(command)
        except OSError as e:
            raise EngineLoadError(path, f"Unable to start ffprobe: {e}") from e

        if returncode != 0:
            raise EngineLoadError(path, f"ffprobe failed with code {returncode}: {stderr.strip()}")

        try:
            payload = json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise EngineLoadError(path, "ffprobe did not return JSON.") from e

        return EngineCommand(self, parse_probe(path, payload))

    async def execute(self, argv: list[str], output_path: str) -> EngineReport:
        """Run a prepared ffmpeg command line."""
        self.logger.debug("engine run: %s", " ".join(argv))
        try:
            returncode, stdout, stderr = await _communicate(argv)
        except OSError as e:
            raise EngineRunError(output_path, f"Unable to start ffmpeg: {e}") from e

        if returncode != 0:
            raise EngineRunError(output_path, _last_line(stderr), stderr)
        return EngineReport(output_path=output_path, stdout=stdout, stderr=stderr)


def parse_probe(path: Path, payload: dict[str, Any]) -> AudioAsset:
    """
    Build an AudioAsset from ffprobe JSON.

    Raises:
        EngineLoadError: If no stream is found, or an audio asset reports no duration
    """
    streams = payload.get("streams") or []
    fmt = payload.get("format") or {}
    if not streams and not fmt:
        raise EngineLoadError(path, "No media streams found.")

    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)
    video = next((s for s in streams if s.get("codec_type") == "video"), None)

    duration = _optional_float(fmt.get("duration"))
    if duration is None:
        duration = _optional_float((audio or {}).get("duration"))
    if duration is None:
        # Still images carry no duration
        if audio is not None or video is None:
            raise EngineLoadError(path, "No duration reported.")
        duration = 0.0

    return AudioAsset(
        path=path,
        duration=duration,
        codec=(audio or {}).get("codec_name"),
        channels=_optional_int((audio or {}).get("channels")),
        sample_rate=_optional_int((audio or {}).get("sample_rate")),
        width=_optional_int((video or {}).get("width")),
        height=_optional_int((video or {}).get("height")),
    )


async def _communicate(argv: list[str]) -> tuple[int, str, str]:
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return (
        process.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


def _optional_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _last_line(text: str) -> str:
    lines = [line for line in text.strip().splitlines() if line.strip()]
    return lines[-1] if lines else "no error output"
