from __future__ import annotations

import logging
import math

import numpy as np

from .buffer import SampleBuffer
from .errors import InvalidParameterError, ResourceLimitExceededError, SpeedTransformError
from .wav import BYTES_PER_SAMPLE, MAX_DATA_BYTES, data_size

_LOGGER = logging.getLogger("audiorepeat.speed")


def validate_speed(factor: float) -> float:
    if isinstance(factor, bool) or not isinstance(factor, (int, float)):
        raise InvalidParameterError(f"speed factor must be a number, got {type(factor).__name__}")
    value = float(factor)
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidParameterError(f"speed factor must be positive and finite, got {factor!r}")
    return value


def output_frames(frame_count: int, factor: float) -> int:
    """Frames produced by resampling `frame_count` frames at `factor`."""

    if frame_count <= 0:
        raise SpeedTransformError("Cannot change the speed of an empty buffer")
    try:
        raw = frame_count / factor
    except (OverflowError, ZeroDivisionError) as exc:
        raise SpeedTransformError(f"Speed factor {factor!r} gives an unusable length") from exc
    if not math.isfinite(raw):
        raise SpeedTransformError(f"Speed factor {factor!r} gives a non-finite length")
    frames = max(1, math.floor(raw))
    if frames > MAX_DATA_BYTES // BYTES_PER_SAMPLE:
        raise ResourceLimitExceededError(
            f"Speed factor {factor!r} gives {frames} frames, more than a WAV file can hold",
            projected_frames=frames,
            limit=MAX_DATA_BYTES // BYTES_PER_SAMPLE,
        )
    if frames > np.iinfo(np.intp).max:
        raise SpeedTransformError(f"Speed factor {factor!r} gives an unrepresentable length")
    return frames


def apply_speed(buffer: SampleBuffer, factor: float) -> SampleBuffer:
    """Resample every channel so it plays `factor` times faster.

    Output frame ``j`` reads source position ``j * factor`` with linear
    interpolation; positions past the last frame hold the last sample.
    Pitch moves with speed.
    """

    factor = validate_speed(factor)
    if factor == 1.0:
        return buffer

    frames = output_frames(buffer.frame_count, factor)
    if data_size(buffer.channel_count, frames) > MAX_DATA_BYTES:
        raise ResourceLimitExceededError(
            f"{buffer.channel_count} channel(s) of {frames} frames exceed the WAV size limit",
            projected_frames=frames,
            limit=MAX_DATA_BYTES // (buffer.channel_count * BYTES_PER_SAMPLE),
        )
    positions = np.arange(frames, dtype=np.float64) * factor
    source_index = np.arange(buffer.frame_count, dtype=np.float64)
    out = np.empty((buffer.channel_count, frames), dtype=np.float32)
    for channel in range(buffer.channel_count):
        out[channel] = np.interp(positions, source_index, buffer.channel(channel))
    out.setflags(write=False)

    _LOGGER.debug(
        "Speed x%s: %d -> %d frames",
        factor,
        buffer.frame_count,
        frames,
    )
    return SampleBuffer(samples=out, sample_rate=buffer.sample_rate)
