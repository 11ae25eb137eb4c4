"""
SoundPost v1 — Podcast Episode Audio Post-Processing

Drives FFmpeg/FFprobe through a fixed chain of stages:

    overread guard → codec repair → silence trim / removal
    → intro/outro fetch, fades and mixing → loudness → tagging

Invariants:
    - All timestamps are seconds (float); engine-facing values are ms-rounded
    - A stage deletes its input only after its own output exists
    - A failing stage leaves its input and removes its partial output
    - No in-process decoding; every audio transformation is an engine run
"""

__version__ = "1.0.0"
