"""Caption Studio backend — auto-captions, Hinglish, and burned-in export.

WHY: The browser caption editor needs three things it cannot do itself:
word-level timestamps for the speech in a video, romanized (Hinglish)
versions of those words, and a final render with the styled captions and
overlays burned in.

HOW: Three pipelines share one IR (core.ir):
  acquire   — AssemblyAI transcription → WordTimestamps (core.transcription)
  rewrite   — OpenRouter transliteration, timestamps preserved (core.transliteration)
  render    — timeline → single-pass ffmpeg filter chain → background job (render)

RULES:
- Timestamps are never altered after acquisition
- Export is always one encoder pass
- Collaborators are reached only through the clients in caption_studio.api
"""

__version__ = "0.1.0"
