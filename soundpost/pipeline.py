"""
SoundPost v1 Pipeline Orchestrator

PIPELINE STAGES (FIXED ORDER):

    1. Overread Guard        → soundpost.stages.overread
    2. Codec Repair          → soundpost.stages.codec
    3. Head/Tail Trim        → soundpost.stages.trim
    4. Silence Removal       → soundpost.stages.silence_removal
    5. Intro/Outro Fetch     → soundpost.stages.fetch
    6. Intro Fade            → soundpost.stages.intro
    7. Outro Fade            → soundpost.stages.outro
    8. Composition           → soundpost.stages.compose
    9. Loudness              → soundpost.stages.normalize
   10. Tagging               → soundpost.stages.tagging

INVARIANTS:
    - Stages execute strictly in order; each starts only after its
      predecessor's artifact exists
    - Stages never call each other (only the orchestrator sequences)
    - Each stage exposes exactly one entrypoint: async run(ctx) -> ctx
    - Stages that do not apply to the request return ctx unchanged
    - Pipeline stops on the first stage failure and never retries

SCHEMAS:
    - schemas/status.schema.json
"""

import importlib
from dataclasses import dataclass
from pathlib import Path

from soundpost import __version__
from soundpost.context import EpisodeContext
from soundpost.stages.base import StageFailure
from soundpost.utils import now_iso, serialize_json


# Stage registry: (name, module_path)
STAGE_ORDER = [
    ("overread", "soundpost.stages.overread"),
    ("codec", "soundpost.stages.codec"),
    ("trim", "soundpost.stages.trim"),
    ("silence_removal", "soundpost.stages.silence_removal"),
    ("fetch", "soundpost.stages.fetch"),
    ("intro", "soundpost.stages.intro"),
    ("outro", "soundpost.stages.outro"),
    ("compose", "soundpost.stages.compose"),
    ("normalize", "soundpost.stages.normalize"),
    ("tagging", "soundpost.stages.tagging"),
]

STATUS_FILENAME = "status.json"


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run."""

    job_id: str
    success: bool
    output_path: Path | None = None
    failed_stage: str | None = None
    failure: StageFailure | None = None
    completed: tuple[str, ...] = ()

    @property
    def errors(self) -> list[dict]:
        return [] if self.failure is None else self.failure.errors


async def run_pipeline(ctx: EpisodeContext, stages: list[tuple[str, str]] | None = None) -> PipelineResult:
    """
    Execute the stages in order, threading ctx.audio_path through them.

    Args:
        ctx: EpisodeContext with the working copy of the episode.
        stages: Optional subset of STAGE_ORDER (same order); defaults to all.

    Returns:
        PipelineResult. On failure output_path is None and the failing
        stage's input is left in place for diagnosis.

    Note:
        Overwrites <job_dir>/status.json.
    """
    stages = STAGE_ORDER if stages is None else stages
    started_at = now_iso()
    completed: list[str] = []
    failure: StageFailure | None = None

    ctx.logger.info("pipeline started for job %s: %s", ctx.job_id, ctx.audio_path)
    for stage_name, module_path in stages:
        module = importlib.import_module(module_path)
        try:
            ctx = await module.run(ctx)
        except StageFailure as e:
            failure = e
            ctx.logger.error("stage %s failed for job %s: %s", e.stage, ctx.job_id, e)
            break
        completed.append(stage_name)
        ctx.logger.debug("stage %s done: %s", stage_name, ctx.audio_path)

    success = failure is None
    result = PipelineResult(
        job_id=ctx.job_id,
        success=success,
        output_path=ctx.audio_path if success else None,
        failed_stage=None if success else failure.stage,
        failure=failure,
        completed=tuple(completed),
    )

    write_status(ctx, result, started_at=started_at, completed_at=now_iso())
    if success:
        ctx.logger.info("pipeline finished for job %s: %s", ctx.job_id, result.output_path)
    return result


def build_status(
    ctx: EpisodeContext,
    result: PipelineResult,
    *,
    started_at: str,
    completed_at: str,
) -> dict:
    """Job-level status document (see schemas/status.schema.json)."""
    return {
        "job_id": ctx.job_id,
        "version": __version__,
        "started_at": started_at,
        "completed_at": completed_at,
        "success": result.success,
        "failed_stage": result.failed_stage,
        "completed_stages": list(result.completed),
        "output_path": None if result.output_path is None else str(result.output_path),
        "overread": ctx.overread,
        "noise_db": ctx.effective_noise_db,
        "request": ctx.request.to_dict(),
        "errors": result.errors,
    }


def write_status(ctx: EpisodeContext, result: PipelineResult, *, started_at: str, completed_at: str) -> Path:
    status_path = Path(ctx.job_dir) / STATUS_FILENAME
    status = build_status(ctx, result, started_at=started_at, completed_at=completed_at)
    status_path.write_text(serialize_json(status))
    return status_path
