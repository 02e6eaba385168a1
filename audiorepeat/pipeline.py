from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Coroutine, TypeVar

from pydantic import BaseModel, ConfigDict

from .buffer import SampleBuffer
from .config import PipelineSettings, debug_enabled
from .decode import Decoder, SoundfileDecoder
from .errors import (
    AudioRepeatError,
    DecodeError,
    ProcessingError,
    ResourceLimitExceededError,
    SpeedTransformError,
)
from .logging_utils import log_exception
from .models import (
    EncodedAudio,
    JobProgress,
    JobResult,
    JobState,
    OutputEstimate,
    ProcessingRequest,
    project_frames,
)
from .repeat import RepeatPass, iter_repeat
from .sinks import Sink
from .speed import apply_speed
from .wav import BYTES_PER_SAMPLE, MAX_DATA_BYTES, data_size, encode

_LOGGER = logging.getLogger("audiorepeat.pipeline")

ConfirmLargeOutput = Callable[[OutputEstimate], bool | Awaitable[bool]]

T = TypeVar("T")

# Progress bands per stage, in percent.
_DECODE_DONE = 10.0
_PREFLIGHT = 15.0
_SPEED_START = 20.0
_REPEAT_START = 30.0
_REPEAT_SPAN = 60.0
_ENCODE_START = 95.0


class PipelineHooks(BaseModel):
    on_state_change: Callable[[JobState], None] | None = None
    on_progress: Callable[[JobProgress], None] | None = None
    on_warning: Callable[[str], None] | None = None
    on_error: Callable[[AudioRepeatError], None] | None = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )


class _Cancelled(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _call_hook(name: str, hook: Callable[[Any], None] | None, value: Any) -> None:
    if hook is None:
        return
    try:
        hook(value)
    except Exception as exc:
        _LOGGER.warning("Pipeline hook %s failed: %s", name, exc, exc_info=debug_enabled())


class _Job:
    """Per-run state; discarded when the run returns."""

    def __init__(self, hooks: PipelineHooks | None) -> None:
        self._hooks = hooks
        self.state: JobState = "idle"
        self.percent = 0.0
        self.warnings: list[str] = []

    def transition(self, state: JobState) -> None:
        _LOGGER.debug("Job state %s -> %s", self.state, state)
        self.state = state
        if self._hooks is not None:
            _call_hook("on_state_change", self._hooks.on_state_change, state)

    def progress(self, percent: float, phase: str) -> None:
        self.percent = min(100.0, max(self.percent, percent))
        if self._hooks is not None:
            _call_hook(
                "on_progress",
                self._hooks.on_progress,
                JobProgress(percent=self.percent, phase=phase, state=self.state),
            )

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        if self._hooks is not None:
            _call_hook("on_warning", self._hooks.on_warning, message)

    def fail(self, error: AudioRepeatError) -> None:
        self.transition("failed")
        if self._hooks is not None:
            _call_hook("on_error", self._hooks.on_error, error)


def _check_abort(abort: threading.Event | None) -> None:
    if abort is not None and abort.is_set():
        raise _Cancelled("Aborted")


def _run_async(coro: Coroutine[Any, Any, T]) -> T:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    _LOGGER.info("Event loop already running; running job on a worker thread.")
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


class Pipeline:
    """Decode, change speed, repeat and encode one request per run."""

    def __init__(
        self,
        *,
        decoder: Decoder | None = None,
        sink: Sink | None = None,
        hooks: PipelineHooks | None = None,
        confirm_large_output: ConfirmLargeOutput | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self._decoder = decoder or SoundfileDecoder()
        self._sink = sink
        self._hooks = hooks
        self._confirm = confirm_large_output
        self._settings = settings or PipelineSettings()

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    async def arun(
        self,
        request: ProcessingRequest,
        *,
        abort: threading.Event | None = None,
    ) -> JobResult:
        job = _Job(self._hooks)
        try:
            audio = await self._execute(job, request, abort)
            job.transition("ready")
            job.progress(100.0, "Ready")
            return JobResult(state="ready", audio=audio, warnings=tuple(job.warnings))
        except _Cancelled as signal:
            _LOGGER.info("Job cancelled: %s", signal.reason)
            job.transition("cancelled")
            return JobResult(state="cancelled", warnings=tuple(job.warnings), reason=signal.reason)
        except AudioRepeatError as exc:
            self._log_failure(job, exc)
            job.fail(exc)
            return JobResult(state="failed", error=exc, warnings=tuple(job.warnings))
        except Exception as exc:
            wrapped = ProcessingError(f"Processing failed while {job.state}: {exc}")
            wrapped.__cause__ = exc
            self._log_failure(job, exc)
            job.fail(wrapped)
            return JobResult(state="failed", error=wrapped, warnings=tuple(job.warnings))
        finally:
            job.transition("idle")

    def run(
        self,
        request: ProcessingRequest,
        *,
        abort: threading.Event | None = None,
    ) -> JobResult:
        return _run_async(self.arun(request, abort=abort))

    def process(
        self,
        data: bytes,
        *,
        speed: float = 1.0,
        repeats: int = 1,
        source_name: str | None = None,
        abort: threading.Event | None = None,
    ) -> JobResult:
        """Validate parameters, then run. Bad parameters raise before decoding."""

        request = ProcessingRequest.create(
            data,
            speed_factor=speed,
            repeat_count=repeats,
            source_name=source_name,
        )
        return self.run(request, abort=abort)

    async def _execute(
        self,
        job: _Job,
        request: ProcessingRequest,
        abort: threading.Event | None,
    ) -> EncodedAudio:
        job.transition("decoding")
        job.progress(0.0, "Decoding audio... (1/3)")
        buffer = await self._decode(request)
        job.progress(_DECODE_DONE, "Decoded audio")
        _check_abort(abort)

        job.progress(_PREFLIGHT, "Preparing repeat... (2/3)")
        await self._preflight(buffer, request)
        _check_abort(abort)

        if request.speed_factor != 1.0:
            job.transition("transforming_speed")
            job.progress(_SPEED_START, f"Changing speed (x{request.speed_factor:g})")
            buffer = await self._change_speed(job, buffer, request.speed_factor)
            _check_abort(abort)

        job.transition("repeating")
        job.progress(_REPEAT_START, "Rendering... (3/3)")
        repeated = buffer
        for item in iter_repeat(buffer, request.repeat_count):
            if isinstance(item, RepeatPass):
                job.progress(
                    _REPEAT_START + _REPEAT_SPAN * item.fraction,
                    f"Rendering... (3/3) pass {item.index}/{item.count}",
                )
                await asyncio.sleep(0)
                _check_abort(abort)
            else:
                repeated = item

        job.transition("encoding")
        job.progress(_ENCODE_START, "Finalizing file...")
        audio = await asyncio.to_thread(encode, repeated, filename=self._settings.output_filename)
        if self._sink is not None:
            self._sink(audio)
        return audio

    async def _decode(self, request: ProcessingRequest) -> SampleBuffer:
        try:
            return await asyncio.to_thread(self._decoder.decode, request.data)
        except AudioRepeatError:
            raise
        except Exception as exc:
            name = request.source_name or "input"
            raise DecodeError(f"Unable to decode {name}: {exc}") from exc

    async def _preflight(self, buffer: SampleBuffer, request: ProcessingRequest) -> None:
        estimate = OutputEstimate(
            projected_frames=project_frames(
                buffer.frame_count,
                request.speed_factor,
                request.repeat_count,
            ),
            sample_rate=buffer.sample_rate,
            channel_count=buffer.channel_count,
            threshold=self._settings.large_output_threshold,
        )
        if data_size(estimate.channel_count, estimate.projected_frames) > MAX_DATA_BYTES:
            raise ResourceLimitExceededError(
                f"Projected output of {estimate.projected_frames} frames exceeds the WAV size limit",
                projected_frames=estimate.projected_frames,
                limit=MAX_DATA_BYTES // (estimate.channel_count * BYTES_PER_SAMPLE),
            )
        if not estimate.exceeds_threshold:
            return
        _LOGGER.info(
            "Projected output of %d frames exceeds %d; asking for confirmation",
            estimate.projected_frames,
            estimate.threshold,
        )
        if await self._confirm_large(estimate):
            return
        limit = ResourceLimitExceededError(
            f"Output of ~{estimate.minutes} min ({estimate.projected_frames} frames) declined",
            projected_frames=estimate.projected_frames,
            limit=estimate.threshold,
        )
        raise _Cancelled(str(limit))

    async def _confirm_large(self, estimate: OutputEstimate) -> bool:
        if self._confirm is None:
            return False
        answer = self._confirm(estimate)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def _change_speed(self, job: _Job, buffer: SampleBuffer, factor: float) -> SampleBuffer:
        try:
            return await asyncio.to_thread(apply_speed, buffer, factor)
        except SpeedTransformError as exc:
            _LOGGER.warning("Speed change skipped, using original audio: %s", exc)
            job.warn(f"Speed change skipped, using original audio: {exc}")
            return buffer

    def _log_failure(self, job: _Job, exc: BaseException) -> None:
        _LOGGER.warning("Job failed while %s: %s", job.state, exc, exc_info=debug_enabled())
        log_exception(f"pipeline ({job.state})", exc)
