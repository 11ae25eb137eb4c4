"""
SoundPost v1 Error Taxonomy.

Responsibilities:
- Base error for everything the pipeline raises on purpose
- One error type per failure class: missing input, engine load,
  engine run, download, composition

Invariants:
- Engine errors always carry the path they were about
- Stage context is added by stages.base.stage_guard, never here
"""


class PipelineError(Exception):
    """Base error for the SoundPost pipeline."""


class MissingInputError(PipelineError, ValueError):
    """Raised when a required path or parameter is absent (before any engine call)."""


class EngineLoadError(PipelineError):
    """Raised when the engine cannot read or probe an asset."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"Error loading file {path}. {message}")


class EngineRunError(PipelineError):
    """Raised when an engine command exits with an error."""

    def __init__(self, output_path, message: str, stderr: str = ""):
        self.output_path = output_path
        self.stderr = stderr
        self.reason = message
        super().__init__(f"Engine command for {output_path} failed. {message}")


class DownloadError(PipelineError):
    """Raised when any of a set of concurrent fetches fails."""

    def __init__(self, urls: dict[str, str], errors: list[BaseException]):
        self.urls = urls
        self.errors = errors
        details = "; ".join(str(e) for e in errors)
        super().__init__(f"Unable to download intro/outro file {urls}. {details}")


class CompositionError(PipelineError):
    """Raised when the overlay leaves no room to place a side clip."""

    def __init__(self, side: str, delay: float, overlay_duration: float):
        self.side = side
        self.delay = delay
        self.overlay_duration = overlay_duration
        super().__init__(
            f"Unable to place {side} with overlay {overlay_duration}s: delay would be {delay}s"
        )
