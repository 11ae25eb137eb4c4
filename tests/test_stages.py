"""
SoundPost v1 Stage Tests

Every stage operation against the recording FakeEngine: command shape,
artifact naming and the consume-on-success / keep-on-failure lifecycle.
"""

import asyncio
from pathlib import Path

import pytest

from soundpost.context import SideClip, TagRequest
from soundpost.errors import EngineLoadError, EngineRunError, MissingInputError
from soundpost.stages.base import StageFailure, build_error, consume, error_code, require, stage_guard
from soundpost.stages.codec import set_mp3_codec
from soundpost.stages.detect import detect_silence
from soundpost.stages.intro import prepare_intro
from soundpost.stages.normalize import normalize_volume
from soundpost.stages.outro import prepare_outro
from soundpost.stages.overread import has_overread
from soundpost.stages.silence_removal import remove_all_silence
from soundpost.stages.tagging import metadata_arguments, resize_cover, tag_audio
from soundpost.stages.trim import remove_silence
from tests.conftest import OVERREAD_TEXT, FakeEngine, arg_value, arg_values, silence_report


class TestStageBase:
    def test_build_error(self):
        error = build_error("TRIM_ENGINE_RUN", "boom", "trim")
        assert error == {"code": "TRIM_ENGINE_RUN", "message": "boom", "stage": "trim"}

    def test_error_codes(self):
        assert error_code("trim", MissingInputError("x")) == "TRIM_MISSING_INPUT"
        assert error_code("codec", EngineLoadError("a.mp3", "bad")) == "CODEC_ENGINE_LOAD"
        assert error_code("compose", EngineRunError("out.mp3", "bad")) == "COMPOSE_ENGINE_RUN"

    def test_stage_guard_wraps_pipeline_errors(self):
        with pytest.raises(StageFailure) as exc_info:
            with stage_guard("normalize"):
                raise EngineRunError("out.mp3", "Conversion failed!", "frame=0\nConversion failed!")
        failure = exc_info.value
        assert failure.stage == "normalize"
        assert failure.errors[0]["code"] == "NORMALIZE_ENGINE_RUN"
        assert failure.errors[0]["detail"]["output_path"] == "out.mp3"
        assert isinstance(failure.__cause__, EngineRunError)

    def test_stage_guard_keeps_inner_stage(self):
        with pytest.raises(StageFailure) as exc_info:
            with stage_guard("outer"):
                with stage_guard("inner"):
                    raise MissingInputError("nothing")
        assert exc_info.value.stage == "inner"

    def test_stage_guard_ignores_other_errors(self):
        with pytest.raises(KeyError):
            with stage_guard("trim"):
                raise KeyError("unexpected")

    def test_require(self):
        assert require("a.mp3", "missing") == "a.mp3"
        for empty in (None, "", [], {}):
            with pytest.raises(MissingInputError, match="missing"):
                require(empty, "missing")

    def test_consume_skips_absent(self, tmp_path):
        existing = tmp_path / "a.mp3"
        existing.write_bytes(b"x")
        consume(existing, None, tmp_path / "gone.mp3")
        assert not existing.exists()


class TestDetect:
    def test_command_and_report(self, episode):
        engine = FakeEngine(duration=10.0, detect_text=silence_report((0.0, 1.2)))
        report = asyncio.run(detect_silence(engine, episode, noise_db=-50, min_duration=0.5))

        argv = engine.calls[0]
        assert arg_value(argv, "-af") == "silencedetect=n=-50dB:d=0.5"
        assert arg_value(argv, "-f") == "null"
        assert argv[-1] == "-"
        assert report.asset.duration == 10.0
        assert [(e.start, e.end) for e in report.events()] == [(0.0, 1.2)]
        assert episode.exists()

    def test_missing_path(self):
        with pytest.raises(MissingInputError):
            asyncio.run(detect_silence(FakeEngine(), ""))

    def test_unloadable_file(self, tmp_path):
        with pytest.raises(EngineLoadError, match="missing.mp3"):
            asyncio.run(detect_silence(FakeEngine(), tmp_path / "missing.mp3"))

    def test_run_failure_wrapped(self, episode):
        engine = FakeEngine()

        async def failing_execute(argv, output_path):
            raise EngineRunError(output_path, "Invalid argument")

        engine.execute = failing_execute
        with pytest.raises(EngineRunError, match="Unable to read silence detect"):
            asyncio.run(detect_silence(engine, episode))


class TestOverread:
    def test_detected(self, episode):
        engine = FakeEngine(detect_text=OVERREAD_TEXT + "\n" + silence_report((1.0, 2.0)))
        assert asyncio.run(has_overread(engine, episode)) is True
        assert arg_value(engine.calls[0], "-af") == "silencedetect=n=-60dB:d=1"

    def test_ordinary_report(self, episode):
        engine = FakeEngine(detect_text=silence_report((1.0, 2.0)))
        assert asyncio.run(has_overread(engine, episode)) is False

    def test_no_side_effects(self, episode):
        engine = FakeEngine(detect_text=OVERREAD_TEXT)
        asyncio.run(has_overread(engine, episode))
        assert engine.runs() == []
        assert list(episode.parent.iterdir()) == [episode]


class TestCodec:
    def test_already_mp3_passes_through(self, episode):
        engine = FakeEngine(codec="mp3")
        assert asyncio.run(set_mp3_codec(engine, episode)) == episode
        assert engine.calls == []
        assert episode.exists()

    def test_converts_other_codec(self, tmp_path):
        source = tmp_path / "episode.wav"
        source.write_bytes(b"wav")
        engine = FakeEngine(codec="pcm_s16le")
        output = asyncio.run(set_mp3_codec(engine, source))

        assert output == tmp_path / "episode_mp3codec.mp3"
        assert output.exists()
        assert not source.exists()
        argv = engine.last_run()
        assert argv[-7:] == ["-q:a", "3", "-acodec", "mp3", "-b:a", "64k", str(output)]

    def test_forced_conversion(self, episode):
        engine = FakeEngine(codec="mp3")
        output = asyncio.run(set_mp3_codec(engine, episode, force=True))
        assert output.name == "episode_mp3codec.mp3"
        assert not episode.exists()

    def test_failure_keeps_source(self, tmp_path):
        source = tmp_path / "episode.wav"
        source.write_bytes(b"wav")
        engine = FakeEngine(codec="pcm_s16le", fail_on=("_mp3codec",))
        with pytest.raises(EngineRunError, match="Setting MP3 codec failed. Conversion failed!"):
            asyncio.run(set_mp3_codec(engine, source))
        assert source.exists()
        assert not (tmp_path / "episode_mp3codec.mp3").exists()


class TestTrim:
    def test_trims_head_and_tail(self, episode):
        engine = FakeEngine(duration=10.0, detect_text=silence_report((0.05, 1.2), (9.0, 9.85)))
        output, plan = asyncio.run(remove_silence(engine, episode))

        assert output == episode.with_name("episode_trimmed.mp3")
        assert (plan.start, plan.end) == (1.2, 9.0)
        argv = engine.last_run()
        assert arg_value(argv, "-af") == "atrim=start=1.200:end=9.000"
        assert arg_value(argv, "-q:a") == "3"
        assert output.exists()
        assert not episode.exists()

    def test_noise_floor_passed_to_detection(self, episode):
        engine = FakeEngine(duration=10.0)
        asyncio.run(remove_silence(engine, episode, noise_db=-50.0))
        assert arg_value(engine.calls[0], "-af") == "silencedetect=n=-50dB:d=1"

    def test_no_silence_keeps_everything(self, episode):
        engine = FakeEngine(duration=10.0)
        _, plan = asyncio.run(remove_silence(engine, episode))
        assert (plan.start, plan.end) == (0, 11.0)
        assert arg_value(engine.last_run(), "-af") == "atrim=start=0.000:end=11.000"

    def test_failure_keeps_source_and_removes_partial(self, episode):
        engine = FakeEngine(fail_on=("_trimmed",))
        with pytest.raises(EngineRunError, match="Unable to trim audio file") as exc_info:
            asyncio.run(remove_silence(engine, episode))
        assert episode.exists()
        assert not episode.with_name("episode_trimmed.mp3").exists()
        assert exc_info.value.output_path == episode.with_name("episode_trimmed.mp3")


class TestRemoveAllSilence:
    def test_concat_graph(self, episode):
        engine = FakeEngine(duration=10.0, detect_text=silence_report((2.0, 3.0), (6.0, 7.0)))
        output = asyncio.run(remove_all_silence(engine, episode))

        assert output == episode.with_name("episode_silence_removed.mp3")
        argv = engine.last_run()
        assert arg_value(argv, "-filter_complex") == (
            "[0]atrim=start=0.000:end=2.000[a1];"
            "[0]atrim=start=3.000:end=6.000[a2];"
            "[0]atrim=start=7.000:end=11.000[a3];"
            "[a1][a2][a3]concat=n=3:v=0:a=1"
        )
        assert arg_value(argv, "-q:a") == "3"
        assert not episode.exists()

    def test_min_duration(self, episode):
        engine = FakeEngine(duration=10.0)
        asyncio.run(remove_all_silence(engine, episode, min_duration=2.5))
        assert arg_value(engine.calls[0], "-af") == "silencedetect=n=-60dB:d=2.5"

    def test_no_silence_passes_through(self, episode):
        engine = FakeEngine(duration=10.0, detect_text="size=N/A time=00:00:10.00")
        assert asyncio.run(remove_all_silence(engine, episode)) == episode
        assert engine.runs() == []
        assert episode.exists()

    def test_failure_keeps_source(self, episode):
        engine = FakeEngine(detect_text=silence_report((2.0, 3.0)), fail_on=("_silence_removed",))
        with pytest.raises(EngineRunError):
            asyncio.run(remove_all_silence(engine, episode))
        assert episode.exists()
        assert not episode.with_name("episode_silence_removed.mp3").exists()


class TestSideClips:
    @pytest.fixture
    def intro_file(self, tmp_path) -> Path:
        path = tmp_path / "episode_intro.mp3"
        path.write_bytes(b"intro")
        return path

    def test_intro_fade_out(self, intro_file):
        engine = FakeEngine(duration=20.0)
        clip = asyncio.run(prepare_intro(engine, intro_file, 5))

        assert clip == SideClip(path=intro_file.with_name("episode_intro_fadeintro.mp3"), duration=20.0)
        assert arg_value(engine.last_run(), "-af") == "afade=t=out:st=10:d=10"
        assert not intro_file.exists()

    def test_intro_without_overlay(self, intro_file):
        engine = FakeEngine(duration=12.5)
        clip = asyncio.run(prepare_intro(engine, intro_file, 0))
        assert clip == SideClip(path=intro_file, duration=12.5)
        assert engine.runs() == []

    def test_intro_fade_clamped(self, intro_file):
        engine = FakeEngine(duration=15.0)
        asyncio.run(prepare_intro(engine, intro_file, 10))
        assert arg_value(engine.last_run(), "-af") == "afade=t=out:st=0:d=20"

    def test_outro_fade_in_and_out(self, tmp_path):
        outro = tmp_path / "episode_outro.mp3"
        outro.write_bytes(b"outro")
        engine = FakeEngine(duration=8.0)
        clip = asyncio.run(prepare_outro(engine, outro, 3))

        assert clip.path == tmp_path / "episode_outro_fadeoutro.mp3"
        assert clip.duration == 8.0
        assert arg_value(engine.last_run(), "-af") == "afade=t=in:st=0:d=6,afade=t=out:st=2:d=6"
        assert arg_value(engine.last_run(), "-q:a") == "3"
        assert not outro.exists()

    def test_missing_path(self):
        with pytest.raises(MissingInputError, match="Outro processing input file is missing"):
            asyncio.run(prepare_outro(FakeEngine(), None, 3))


class TestNormalize:
    def test_loudnorm_command(self, episode):
        engine = FakeEngine()
        output = asyncio.run(normalize_volume(engine, episode))

        assert output == episode.with_name("episode_set_volume.mp3")
        argv = engine.last_run()
        assert arg_value(argv, "-af").startswith("loudnorm=I=-14:TP=-2:LRA=11:measured_I=-19.5")
        assert arg_value(argv, "-ar") == "44.1k"
        assert arg_value(argv, "-q:a") == "3"
        assert not episode.exists()


class TestTagging:
    @pytest.fixture
    def cover(self, tmp_path) -> Path:
        path = tmp_path / "episode_cover.png"
        path.write_bytes(b"png")
        return path

    def test_small_cover_kept(self, cover):
        engine = FakeEngine(assets={cover.name: {"width": 300, "height": 200}})
        assert asyncio.run(resize_cover(engine, cover)) == cover
        assert engine.runs() == []

    def test_large_cover_resized(self, cover):
        engine = FakeEngine(assets={cover.name: {"width": 1400, "height": 300}})
        resized = asyncio.run(resize_cover(engine, cover))
        assert resized == cover.with_name("episode_cover_resized.png")
        assert arg_value(engine.last_run(), "-vf") == "scale=300:300"
        assert not cover.exists()

    def test_metadata_arguments(self):
        tags = TagRequest(cover_path=Path("c.png"), title="Ep 1:\nPilot", artist="Some\r\nOne", track=7)
        assert metadata_arguments(tags, 2024) == [
            ("-metadata", "title=Ep 1:Pilot"),
            ("-metadata", "track=7"),
            ("-metadata", "artist=SomeOne"),
            ("-metadata", "album=Ep 1:Pilot"),
            ("-metadata", "year=2024"),
            ("-metadata", "genre=Podcast"),
        ]

    def test_tag_command(self, episode, cover):
        engine = FakeEngine(assets={cover.name: {"width": 200, "height": 200}})
        tags = TagRequest(cover_path=cover, title="Pilot", artist="Host")
        output = asyncio.run(tag_audio(engine, episode, tags, year=2024))

        assert output == episode.with_name("episode_tagging.mp3")
        argv = engine.last_run()
        assert arg_values(argv, "-i") == [str(episode), str(cover)]
        assert arg_values(argv, "-map") == ["0:0", "1:0"]
        assert arg_value(argv, "-codec") == "copy"
        assert arg_value(argv, "-id3v2_version") == "3"
        assert arg_values(argv, "-metadata:s:v") == ["title=Album cover", "comment=Cover (front)"]
        assert "track=" not in " ".join(arg_values(argv, "-metadata"))
        assert "year=2024" in arg_values(argv, "-metadata")
        assert not episode.exists()

    def test_failed_tag_run_removes_resized_cover(self, episode, cover):
        engine = FakeEngine(
            assets={cover.name: {"width": 1400, "height": 1400}},
            fail_on=("_tagging",),
        )
        tags = TagRequest(cover_path=cover, title="Pilot", artist="Host")
        with pytest.raises(EngineRunError):
            asyncio.run(tag_audio(engine, episode, tags, year=2024))

        assert episode.exists()
        assert not episode.with_name("episode_tagging.mp3").exists()
        assert not cover.with_name("episode_cover_resized.png").exists()

    def test_failed_tag_run_keeps_caller_cover(self, episode, cover):
        engine = FakeEngine(
            assets={cover.name: {"width": 200, "height": 200}},
            fail_on=("_tagging",),
        )
        tags = TagRequest(cover_path=cover, title="Pilot", artist="Host")
        with pytest.raises(EngineRunError):
            asyncio.run(tag_audio(engine, episode, tags, year=2024))

        assert cover.exists()

    def test_missing_cover(self, episode):
        tags = TagRequest(cover_path=None, title="Pilot", artist="Host")
        with pytest.raises(MissingInputError, match="cover image"):
            asyncio.run(tag_audio(FakeEngine(), episode, tags))
