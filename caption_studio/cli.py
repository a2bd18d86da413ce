"""Command-line interface for Caption Studio.

WHY: Everything the editor backend does is also useful from a terminal:
transcribing a clip, converting captions to Hinglish, timing a script,
rendering a saved project, or starting the HTTP server. The CLI wires the
same core functions the API uses behind argparse subcommands.

HOW: One subparser per operation. Async pipelines run via asyncio.run().
Results (word timestamp JSON) go to stdout or --output; status messages go
to stderr so the CLI can be piped. -v turns on logging to stderr.

RULES:
- Subcommands: transcribe, hinglish, timestamps, export, serve
- Word timestamps are read and written as JSON lists of
  {word, start, end, confidence}
- export reads a project JSON {layers, wordTimestamps, captionStyle}
- Status output goes to stderr (not stdout)
- Known failures print "Error: ..." and exit 1; Ctrl-C exits 130
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from caption_studio.api.assemblyai import (
    AssemblyAIError,
    TranscriptionFailedError,
    TranscriptionTimeoutError,
)
from caption_studio.config import ConfigurationError
from caption_studio.core.ir import CaptionStyle, WordTimestamp, layer_from_dict
from caption_studio.core.media import ExtractionError
from caption_studio.core.script import script_timestamps
from caption_studio.core.transcription import transcribe
from caption_studio.core.transliteration import transform
from caption_studio.render.executor import ExportSpec, RenderExecutor
from caption_studio.server.jobs import InMemoryJobRepository, JobStatus

# Failures that are reported as a one-line error instead of a traceback.
_KNOWN_ERRORS = (
    ConfigurationError,
    ExtractionError,
    AssemblyAIError,
    TranscriptionFailedError,
    TranscriptionTimeoutError,
    ValueError,
    OSError,
)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _read_json(path: str) -> Any:
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _write_words(words: List[WordTimestamp], output: Optional[str]) -> None:
    text = json.dumps([w.to_dict() for w in words], ensure_ascii=False, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        _status("Saved {} words to {}".format(len(words), output))
    else:
        print(text)


def _load_words(path: str) -> List[WordTimestamp]:
    data = _read_json(path)
    if isinstance(data, dict):
        # Accept the API response shapes as well as a bare list.
        data = data.get("captions") or data.get("wordTimestamps") or data.get("timestamps") or []
    return [WordTimestamp.from_dict(item) for item in data]


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


async def _cmd_transcribe(args: argparse.Namespace) -> None:
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))

    _status("Transcribing {} (language: {})...".format(input_path.name, args.language))
    words = await transcribe(input_path, args.language, on_status=_status)
    _status("  {} words".format(len(words)))
    _write_words(words, args.output)


async def _cmd_hinglish(args: argparse.Namespace) -> None:
    words = _load_words(args.captions)
    _status("Converting {} words to Hinglish...".format(len(words)))
    result = await transform(words)
    if result.used_fallback:
        _status("  Used rule-based conversion due to API error")
    else:
        _status("  Model: {}".format(result.model))
    _write_words(result.words, args.output)


def _cmd_timestamps(args: argparse.Namespace) -> None:
    if args.script_file:
        script = Path(args.script_file).read_text(encoding="utf-8")
    else:
        script = " ".join(args.text or [])
    words = script_timestamps(script, seconds_per_word=args.seconds_per_word)
    _write_words(words, args.output)


async def _cmd_export(args: argparse.Namespace) -> None:
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        _fail("File not found: {}".format(input_path))

    project = _read_json(args.project) if args.project else {}
    spec = ExportSpec(
        video_path=str(input_path),
        layers=[layer_from_dict(d) for d in project.get("layers", [])],
        word_timestamps=[WordTimestamp.from_dict(d) for d in project.get("wordTimestamps", [])],
        caption_style=CaptionStyle.from_dict(project.get("captionStyle")),
    )

    output_dir = Path(args.output_dir).resolve()
    executor = RenderExecutor(
        InMemoryJobRepository(),
        exports_dir=output_dir,
        download_base_url=output_dir.as_uri(),
    )
    job_id = executor.submit(spec)
    _status("Rendering {} ({} layers, {} words)...".format(
        input_path.name, len(spec.layers), len(spec.word_timestamps)
    ))

    job = await executor.wait(job_id)
    if job is None or job.status is not JobStatus.COMPLETE:
        _fail(job.error if job is not None else "export job disappeared")
    _status("Done! Saved {}".format(output_dir / "export_{}.mp4".format(job_id)))


def _cmd_serve(args: argparse.Namespace) -> None:
    from caption_studio.server.app import run_api
    run_api(host=args.host, port=args.port)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    Separate from main() so tests can inspect the parser without running
    anything.
    """
    parser = argparse.ArgumentParser(
        prog="caption_studio",
        description="Word-level captions, Hinglish transliteration and "
                    "burned-in caption exports for short videos.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log progress details to stderr.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("transcribe", help="Transcribe an audio/video file to word timestamps.")
    p.add_argument("input_file", help="Path to the audio or video file.")
    p.add_argument(
        "--language",
        default="auto",
        help="'auto' for detection, or a language code such as 'hi' (default: %(default)s).",
    )
    p.add_argument("-o", "--output", default=None, help="Write JSON here instead of stdout.")

    p = sub.add_parser("hinglish", help="Transliterate word timestamps to Hinglish.")
    p.add_argument("captions", help="Word timestamp JSON file, or '-' for stdin.")
    p.add_argument("-o", "--output", default=None, help="Write JSON here instead of stdout.")

    p = sub.add_parser("timestamps", help="Evenly time a typed script.")
    p.add_argument("text", nargs="*", help="Script text (or use --script-file).")
    p.add_argument("--script-file", default=None, help="Read the script from a file.")
    p.add_argument(
        "--seconds-per-word",
        type=float,
        default=0.4,
        help="Slot length per word in seconds (default: %(default)s).",
    )
    p.add_argument("-o", "--output", default=None, help="Write JSON here instead of stdout.")

    p = sub.add_parser("export", help="Render a video with burned-in captions and overlays.")
    p.add_argument("input_file", help="Path to the source video.")
    p.add_argument(
        "--project",
        default=None,
        help="Project JSON with layers, wordTimestamps and captionStyle ('-' for stdin).",
    )
    p.add_argument(
        "--output-dir",
        default="exports",
        help="Directory for the rendered file (default: %(default)s).",
    )

    p = sub.add_parser("serve", help="Run the HTTP API server.")
    p.add_argument("--host", default="0.0.0.0", help="Bind address (default: %(default)s).")
    p.add_argument("--port", type=int, default=3000, help="Port (default: %(default)s).")

    return parser


_COMMANDS = {
    "transcribe": _cmd_transcribe,
    "hinglish": _cmd_hinglish,
    "timestamps": _cmd_timestamps,
    "export": _cmd_export,
    "serve": _cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m caption_studio`` and the console script.

    argv=None means sys.argv; an explicit list is for testing.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    handler = _COMMANDS[args.command]
    try:
        if inspect.iscoroutinefunction(handler):
            asyncio.run(handler(args))
        else:
            handler(args)
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except _KNOWN_ERRORS as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
