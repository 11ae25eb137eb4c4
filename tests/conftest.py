"""
SoundPost v1 Test Configuration

Provides a recording fake engine, silence-report builders, WAV fixtures
and the CLI subprocess helper.
"""

import subprocess
import sys
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from soundpost.engine import NULL_OUTPUT, AudioAsset, EngineCommand, EngineReport
from soundpost.errors import EngineLoadError, EngineRunError


TEST_SAMPLE_RATE = 44100


def run_cli(*args: str, cwd: str | None = None) -> subprocess.CompletedProcess:
    """Run soundpost CLI as subprocess."""
    return subprocess.run(
        [sys.executable, "-m", "soundpost", *args],
        capture_output=True,
        text=True,
        cwd=cwd,
    )


def silence_report(*events: tuple, prefix: str = "") -> str:
    """
    Build engine diagnostic text for the given silences.

    Args:
        events: (start,) or (start, end) tuples in seconds
        prefix: Extra text placed before the report (e.g. overread lines)
    """
    lines = [prefix] if prefix else []
    for event in events:
        start = event[0]
        lines.append(f"[silencedetect @ 0x55d4c1a2] silence_start: {start}")
        if len(event) > 1:
            end = event[1]
            lines.append(
                f"[silencedetect @ 0x55d4c1a2] silence_end: {end} | silence_duration: {round(end - start, 6)}"
            )
    return "\n".join(lines)


OVERREAD_TEXT = (
    "[mp3float @ 0x55d4c1a2] overread, skip -5 enddists: -3 -3\n"
    "[mp3float @ 0x55d4c1a2] overread, skip -7 enddists: -2 -2"
)


class FakeEngine:
    """
    Engine double with the FFmpegEngine shape.

    - load() probes from `assets` (by file name) or the defaults
    - every run is recorded as an argv list in `calls`
    - null-output runs return the scripted detection text for the input
    - other runs write their output file, unless the output name contains a
      `fail_on` fragment, in which case a partial file is written and
      EngineRunError is raised
    """

    ffmpeg_path = "ffmpeg"

    def __init__(
        self,
        *,
        duration: float = 100.0,
        codec: str = "mp3",
        assets: dict[str, dict] | None = None,
        reports: dict[str, str] | None = None,
        detect_text: str = "",
        fail_on: tuple[str, ...] = (),
    ):
        self.duration = duration
        self.codec = codec
        self.assets = assets or {}
        self.reports = reports or {}
        self.detect_text = detect_text
        self.fail_on = fail_on
        self.calls: list[list[str]] = []
        self.loaded: list[Path] = []

    async def load(self, path) -> EngineCommand:
        path = Path(path)
        if not path.is_file():
            raise EngineLoadError(path, "File does not exist.")
        self.loaded.append(path)
        values = {"duration": self.duration, "codec": self.codec}
        values.update(self.assets.get(path.name, {}))
        return EngineCommand(self, AudioAsset(path=path, **values))

    async def execute(self, argv: list[str], output_path: str) -> EngineReport:
        self.calls.append(argv)
        source = Path(argv[argv.index("-i") + 1])

        if output_path == NULL_OUTPUT:
            text = self.reports.get(source.name, self.detect_text)
            return EngineReport(output_path=output_path, stdout="", stderr=text)

        output = Path(output_path)
        if any(fragment in output.name for fragment in self.fail_on):
            output.write_bytes(b"partial")
            raise EngineRunError(output_path, "Conversion failed!", "frame=0\nConversion failed!")

        output.write_bytes(b"fake audio")
        return EngineReport(output_path=output_path, stdout="", stderr="")

    # Helpers for assertions

    def runs(self) -> list[list[str]]:
        """Recorded runs that produced a file (analysis runs excluded)."""
        return [argv for argv in self.calls if argv[-1] != NULL_OUTPUT]

    def last_run(self) -> list[str]:
        return self.runs()[-1]


def arg_value(argv: list[str], flag: str) -> str:
    """Value following the first occurrence of `flag`."""
    return argv[argv.index(flag) + 1]


def arg_values(argv: list[str], flag: str) -> list[str]:
    """Values following every occurrence of `flag`."""
    return [argv[i + 1] for i, item in enumerate(argv) if item == flag]


def create_test_wav(
    path: Path,
    duration_sec: float = 6.0,
    silences: tuple[tuple[float, float], ...] = ((0.0, 1.5),),
) -> None:
    """
    Create a WAV file with tone everywhere except the given silences.

    Args:
        path: Output path for WAV file
        duration_sec: Duration in seconds
        silences: (start, end) windows of digital silence
    """
    num_samples = int(TEST_SAMPLE_RATE * duration_sec)
    t = np.arange(num_samples) / TEST_SAMPLE_RATE

    # Deterministic tone: sum of a few sine waves
    samples = (
        0.3 * np.sin(2 * np.pi * 220 * t) +
        0.2 * np.sin(2 * np.pi * 440 * t)
    ).astype(np.float32)

    for start, end in silences:
        samples[int(start * TEST_SAMPLE_RATE):int(end * TEST_SAMPLE_RATE)] = 0.0

    sf.write(str(path), samples, TEST_SAMPLE_RATE, subtype="PCM_16")


@pytest.fixture
def episode(tmp_path) -> Path:
    """Placeholder episode file for fake-engine tests."""
    path = tmp_path / "episode.mp3"
    path.write_bytes(b"episode")
    return path


@pytest.fixture
def test_wav_path(tmp_path) -> Path:
    """Real WAV with 1.5 s of leading silence."""
    wav_path = tmp_path / "test_input.wav"
    create_test_wav(wav_path)
    return wav_path
