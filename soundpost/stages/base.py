"""
SoundPost v1 Stage Base Utilities.

Responsibilities:
- StageFailure exception for pipeline control flow
- Error object builder per contract
- stage_guard(): wrap collaborator errors with stage context
- run_command(): one engine run with successor-cleanup on failure

Invariants:
- A failing stage never deletes its input
- A failing stage removes its own partial output
- Sources are consumed (deleted) only after the successor exists
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from soundpost.engine import NULL_OUTPUT, EngineCommand, EngineReport
from soundpost.errors import (
    CompositionError,
    DownloadError,
    EngineLoadError,
    EngineRunError,
    MissingInputError,
    PipelineError,
)
from soundpost.utils import safe_unlink


class StageFailure(Exception):
    """
    Raised when a stage fails.

    Carries the stage name and structured error objects; the underlying
    collaborator error is chained as __cause__ and kept on `cause`.
    """

    def __init__(self, stage: str, errors: list[dict], cause: BaseException | None = None):
        self.stage = stage
        self.errors = errors
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Stage '{stage}' failed{detail}")


def build_error(
    code: str,
    message: str,
    stage: str,
    detail: dict | None = None,
) -> dict:
    """
    Build structured error object per contract.

    Args:
        code: Error code (e.g., "TRIM_ENGINE_RUN")
        message: Human-readable error message
        stage: Stage name where error occurred
        detail: Optional additional details

    Returns:
        Structured error dictionary.
    """
    error: dict = {
        "code": code,
        "message": message,
        "stage": stage,
    }
    if detail is not None:
        error["detail"] = detail
    return error


_ERROR_CODES: list[tuple[type, str]] = [
    (MissingInputError, "MISSING_INPUT"),
    (EngineLoadError, "ENGINE_LOAD"),
    (EngineRunError, "ENGINE_RUN"),
    (DownloadError, "DOWNLOAD"),
    (CompositionError, "COMPOSITION"),
]


def error_code(stage: str, exc: BaseException) -> str:
    for exc_type, suffix in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return f"{stage.upper()}_{suffix}"
    return f"{stage.upper()}_FAILED"


def _error_detail(exc: BaseException) -> dict | None:
    if isinstance(exc, EngineLoadError):
        return {"path": str(exc.path)}
    if isinstance(exc, EngineRunError):
        detail = {"output_path": str(exc.output_path)}
        if exc.stderr:
            detail["stderr_tail"] = exc.stderr.strip()[-2000:]
        return detail
    if isinstance(exc, DownloadError):
        return {"urls": exc.urls}
    if isinstance(exc, CompositionError):
        return {"side": exc.side, "delay": exc.delay, "overlay_duration": exc.overlay_duration}
    return None


@contextmanager
def stage_guard(stage: str) -> Iterator[None]:
    """
    Re-raise PipelineErrors as StageFailure(stage, ...).

    StageFailure raised inside passes through untouched so the innermost
    stage name wins.
    """
    try:
        yield
    except StageFailure:
        raise
    except PipelineError as e:
        error = build_error(
            code=error_code(stage, e),
            message=str(e),
            stage=stage,
            detail=_error_detail(e),
        )
        raise StageFailure(stage, [error], cause=e) from e


def require(value, message: str):
    """Fail fast with MissingInputError when a required value is empty."""
    if value is None or value == "" or (isinstance(value, (list, tuple, dict)) and not value):
        raise MissingInputError(message)
    return value


async def run_command(
    command: EngineCommand,
    output_path: Path,
    failure_message: str,
    logger: logging.Logger | None = None,
) -> EngineReport:
    """
    Run an engine command and clean up its partial output on failure.

    Raises:
        EngineRunError: With `failure_message` as context
    """
    try:
        report = await command.run(output_path)
    except EngineRunError as e:
        if str(output_path) != NULL_OUTPUT and safe_unlink(output_path) and logger is not None:
            logger.debug("removed partial output %s", output_path)
        raise EngineRunError(output_path, f"{failure_message}. {e.reason}", e.stderr) from e
    return report


def consume(*paths: Path | None, logger: logging.Logger | None = None) -> None:
    """Delete consumed source files after a successor has been written."""
    for path in paths:
        if safe_unlink(path) and logger is not None:
            logger.debug("removed consumed artifact %s", path)
