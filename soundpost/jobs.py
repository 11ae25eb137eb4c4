"""
SoundPost v1 Jobs - Job ID resolution and workspace creation.

Responsibilities:
- Job ID resolution (generate or use explicit)
- Workspace creation (jobs/<job_id>/)
- Collision detection

Forbidden:
- No pipeline execution
"""

import uuid
from pathlib import Path


# Fixed workspace layout
WORKSPACE_DIRS = ["meta", "input", "work", "output"]


class WorkspaceExistsError(Exception):
    """Raised when attempting to create a workspace that already exists."""
    pass


def resolve_job_id(explicit_id: str | None) -> str:
    """
    Resolve the job ID.

    Args:
        explicit_id: If provided, use this ID. Otherwise generate UUID.

    Returns:
        The resolved job ID.
    """
    if explicit_id is not None:
        return explicit_id
    return str(uuid.uuid4())


def create_full_workspace(jobs_root: Path, job_id: str) -> dict[str, Path]:
    """
    Create complete job workspace with all directories.

    Creates:
        jobs/<job_id>/
          meta/     run metadata
          input/    untouched copy of the source episode
          work/     intermediate artifacts (owned by the active stage)
          output/   final artifact

    Args:
        jobs_root: Root directory for all job workspaces.
        job_id: The job identifier.

    Returns:
        Dict with keys: job_dir, meta_dir, input_dir, work_dir, output_dir.

    Raises:
        WorkspaceExistsError: If workspace already exists.
    """
    job_dir = jobs_root / job_id

    if job_dir.exists():
        raise WorkspaceExistsError(f"Job workspace already exists: {job_dir}")

    jobs_root.mkdir(parents=True, exist_ok=True)
    job_dir.mkdir(parents=False, exist_ok=False)

    paths = {"job_dir": job_dir}
    for name in WORKSPACE_DIRS:
        directory = job_dir / name
        directory.mkdir()
        paths[f"{name}_dir"] = directory

    return paths
