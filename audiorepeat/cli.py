from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm

from .config import PipelineSettings, debug_enabled
from .decode import decode_audio, read_file
from .logging_utils import configure_logging, log_exception
from .models import JobProgress, OutputEstimate, ProcessingRequest
from .pipeline import Pipeline, PipelineHooks
from .progress import ProgressBar, Spinner, render_error
from .sinks import FileSink

_LOGGER = logging.getLogger("audiorepeat.cli")
_CONSOLE = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="audiorepeat")
    sub = parser.add_subparsers(dest="command", required=True)

    repeat = sub.add_parser("repeat", help="Loop an audio file into a WAV.")
    repeat.add_argument("input", type=str)
    repeat.add_argument("--repeats", "-n", type=int, default=1)
    repeat.add_argument("--speed", "-s", type=float, default=1.0)
    repeat.add_argument("--output", "-o", type=str, default=None)
    repeat.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask before writing very large outputs.",
    )

    info = sub.add_parser("info", help="Show channels, rate and duration of an audio file.")
    info.add_argument("input", type=str)
    return parser


def _repeat(args: argparse.Namespace) -> int:
    settings = PipelineSettings.from_env()
    source = Path(args.input)
    request = ProcessingRequest.create(
        read_file(source),
        speed_factor=args.speed,
        repeat_count=args.repeats,
        source_name=source.name,
    )
    sink = FileSink(Path(args.output) if args.output else Path(settings.output_filename))
    bar = ProgressBar("Starting...")

    def _on_progress(progress: JobProgress) -> None:
        bar.update(progress.percent, progress.phase)

    def _on_warning(message: str) -> None:
        _CONSOLE.print(f"[yellow]Warning:[/yellow] {message}")

    def _confirm(estimate: OutputEstimate) -> bool:
        if args.yes:
            return True
        bar.stop()
        answer = Confirm.ask(estimate.describe(), console=_CONSOLE, default=False)
        if answer:
            bar.start()
        return answer

    pipeline = Pipeline(
        sink=sink,
        hooks=PipelineHooks(on_progress=_on_progress, on_warning=_on_warning),
        confirm_large_output=_confirm,
        settings=settings,
    )
    with bar:
        result = pipeline.run(request)

    match result.state:
        case "ready":
            audio = result.unwrap()
            _CONSOLE.print(
                f"Ready! Wrote {sink.written} ({audio.duration:.1f}s, "
                f"{audio.channel_count} ch, {audio.sample_rate} Hz, {audio.size} bytes)"
            )
            return 0
        case "cancelled":
            _CONSOLE.print("Cancelled")
            return 1
        case _:
            assert result.error is not None
            render_error("audiorepeat repeat", result.error)
            return 1


def _info(args: argparse.Namespace) -> int:
    source = Path(args.input)
    with Spinner(f"Decoding {source.name}"):
        buffer = decode_audio(read_file(source))
    _CONSOLE.print(f"File: {source}")
    _CONSOLE.print(f"Channels: {buffer.channel_count}")
    _CONSOLE.print(f"Sample rate: {buffer.sample_rate} Hz")
    _CONSOLE.print(f"Frames: {buffer.frame_count}")
    _CONSOLE.print(f"Duration: {buffer.duration:.2f}s")
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        if args.command == "repeat":
            return _repeat(args)
        if args.command == "info":
            return _info(args)
        parser.print_help()
        return 1
    except Exception as exc:
        _LOGGER.warning("audiorepeat CLI failed: %s", exc, exc_info=debug_enabled())
        log_exception("audiorepeat CLI", exc)
        render_error(f"audiorepeat {args.command}", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
