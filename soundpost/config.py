"""
SoundPost v1 Configuration

Responsibilities:
- Hold the tuned thresholds and encoder settings as frozen dataclasses
- Load optional YAML files, programmatic overrides and SOUNDPOST_* env vars

Invariants:
- Defaults are the empirically tuned values; change them only on purpose
- Unknown keys are rejected (ConfigError), never silently ignored

Example YAML:

    silence_noise_db: -60
    overread_noise_db: -50
    loudness:
      integrated: -14
      true_peak: -2
"""

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from soundpost.errors import PipelineError
from soundpost.filtergraph import FilterNode, format_number


ENV_PREFIX = "SOUNDPOST_"
ENV_SEPARATOR = "__"


class ConfigError(PipelineError):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class LoudnessSettings:
    """Single-pass loudnorm settings with fixed measured values."""

    integrated: float = -14.0
    true_peak: float = -2.0
    loudness_range: float = 11.0
    measured_i: float = -19.5
    measured_lra: float = 5.7
    measured_tp: float = -0.1
    measured_thresh: float = -30.20
    linear: bool = True
    print_format: str = "summary"

    def to_filter(self) -> FilterNode:
        """Return the loudnorm filter node."""
        return FilterNode(
            "loudnorm",
            (
                ("I", format_number(self.integrated)),
                ("TP", format_number(self.true_peak)),
                ("LRA", format_number(self.loudness_range)),
                ("measured_I", format_number(self.measured_i)),
                ("measured_LRA", format_number(self.measured_lra)),
                ("measured_TP", format_number(self.measured_tp)),
                ("measured_thresh", f"{self.measured_thresh:.2f}"),
                ("linear", "true" if self.linear else "false"),
                ("print_format", self.print_format),
            ),
        )


@dataclass(frozen=True)
class ProcessingConfig:
    """Thresholds, tolerances and encoder settings used by every stage."""

    # Silence detection (dB noise floor, seconds)
    silence_noise_db: float = -60.0
    overread_noise_db: float = -50.0
    silence_min_duration: float = 1.0

    # Planning tolerances (seconds)
    trim_tolerance: float = 0.2
    zone_min_length: float = 0.001
    tail_padding: float = 1.0

    # Mixing
    delay_channels: int = 9

    # Encoding
    mp3_bitrate_kbps: int = 64
    audio_quality: int = 3
    output_sample_rate: str = "44.1k"
    cover_max_size: int = 300

    # Engine binaries
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Downloads
    download_timeout: float = 300.0
    download_chunk_size: int = 64 * 1024

    loudness: LoudnessSettings = field(default_factory=LoudnessSettings)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(
    path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProcessingConfig:
    """
    Build a ProcessingConfig.

    Lookup order (later wins):
        1. Dataclass defaults
        2. YAML file at `path`
        3. `overrides` mapping
        4. SOUNDPOST_<FIELD> / SOUNDPOST_LOUDNESS__<FIELD> environment variables

    Raises:
        ConfigError: On unreadable files, unknown keys or bad values
    """
    data: dict[str, Any] = {}
    if path is not None:
        data = _load_yaml(Path(path))
    if overrides:
        data = _deep_merge(data, overrides)
    data = _deep_merge(data, _env_overrides(os.environ if environ is None else environ))
    return _build(data)


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(payload, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return payload


def _deep_merge(base: Mapping[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        parts = name[len(ENV_PREFIX):].lower().split(ENV_SEPARATOR)
        target = result
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = yaml.safe_load(value)
    return result


def _build(data: Mapping[str, Any]) -> ProcessingConfig:
    data = dict(data)
    loudness_data = data.pop("loudness", None) or {}
    if not isinstance(loudness_data, Mapping):
        raise ConfigError("'loudness' must be a mapping")

    loudness = _apply(LoudnessSettings(), loudness_data, "loudness.")
    return replace(_apply(ProcessingConfig(), data, ""), loudness=loudness)


def _apply(instance, values: Mapping[str, Any], prefix: str):
    known = {f.name: f for f in fields(instance) if f.name != "loudness"}
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {[prefix + k for k in unknown]}")

    coerced = {}
    for key, value in values.items():
        default = getattr(instance, key)
        try:
            if isinstance(default, bool):
                coerced[key] = value if isinstance(value, bool) else str(value).lower() == "true"
            else:
                coerced[key] = type(default)(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid value for {prefix}{key}: {value!r}") from e
    return replace(instance, **coerced)
