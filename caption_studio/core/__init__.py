"""Core pipelines and the shared intermediate representation.

WHY: The core package holds everything that is neither HTTP routing nor
rendering: the IR dataclasses, transcription acquisition, Hinglish
transliteration, script timing, ffmpeg media helpers, and the timeline
layer model.

HOW: ir.py defines the data structures; transcription.py and
transliteration.py produce and rewrite WordTimestamps; timeline.py turns
them into layers for the render builder.

RULES:
- IR dataclasses are the contract between pipelines — change with care
- Only transcription.py and media.py touch the filesystem or subprocesses
"""
