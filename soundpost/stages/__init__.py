"""
SoundPost v1 Pipeline Stages

Fixed order (soundpost.pipeline.STAGE_ORDER):
    1. overread         — Overread guard (forces MP3, relaxes noise floor)
    2. codec            — MP3 codec repair
    3. trim             — Head/tail silence trim
    4. silence_removal  — Multi-gap silence removal
    5. fetch            — Intro/outro download fan-out
    6. intro            — Intro fade-out
    7. outro            — Outro fade-in/fade-out
    8. compose          — Intro/outro mixing
    9. normalize        — Loudness normalization
   10. tagging          — Cover art and ID3 tags

detect is analysis-only and not part of the order.
"""
