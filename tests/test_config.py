"""
SoundPost v1 Configuration Tests
"""

import pytest

from soundpost.config import ConfigError, LoudnessSettings, ProcessingConfig, load_config


class TestDefaults:
    def test_tuned_constants(self):
        config = ProcessingConfig()
        assert config.silence_noise_db == -60.0
        assert config.overread_noise_db == -50.0
        assert config.silence_min_duration == 1.0
        assert config.trim_tolerance == 0.2
        assert config.zone_min_length == 0.001
        assert config.tail_padding == 1.0
        assert config.delay_channels == 9
        assert config.mp3_bitrate_kbps == 64
        assert config.audio_quality == 3
        assert config.output_sample_rate == "44.1k"
        assert config.cover_max_size == 300
        assert config.loudness == LoudnessSettings()

    def test_no_sources_gives_defaults(self):
        assert load_config(environ={}) == ProcessingConfig()


class TestLoadConfig:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "soundpost.yaml"
        path.write_text("overread_noise_db: -45\nloudness:\n  integrated: -16\n")
        config = load_config(path, environ={})
        assert config.overread_noise_db == -45.0
        assert config.loudness.integrated == -16.0
        assert config.loudness.true_peak == -2.0

    def test_overrides_win_over_yaml(self, tmp_path):
        path = tmp_path / "soundpost.yaml"
        path.write_text("mp3_bitrate_kbps: 96\n")
        config = load_config(path, overrides={"mp3_bitrate_kbps": 128}, environ={})
        assert config.mp3_bitrate_kbps == 128

    def test_environment_wins(self):
        config = load_config(
            overrides={"silence_min_duration": 2},
            environ={
                "SOUNDPOST_SILENCE_MIN_DURATION": "3",
                "SOUNDPOST_LOUDNESS__LINEAR": "false",
                "HOME": "/root",
            },
        )
        assert config.silence_min_duration == 3.0
        assert config.loudness.linear is False

    def test_types_are_coerced(self):
        config = load_config(overrides={"audio_quality": "4", "trim_tolerance": 1}, environ={})
        assert config.audio_quality == 4
        assert isinstance(config.trim_tolerance, float)

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="silence_noise"):
            load_config(overrides={"silence_noise": -50}, environ={})

    def test_unknown_loudness_key(self):
        with pytest.raises(ConfigError, match="loudness.gain"):
            load_config(overrides={"loudness": {"gain": 3}}, environ={})

    def test_bad_value(self):
        with pytest.raises(ConfigError, match="audio_quality"):
            load_config(overrides={"audio_quality": "high"}, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml", environ={})

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path, environ={})
