from __future__ import annotations

import logging
from collections.abc import Iterator

import numpy as np
from pydantic import BaseModel, ConfigDict

from .buffer import SampleBuffer
from .errors import InvalidParameterError, ResourceLimitExceededError
from .wav import MAX_DATA_BYTES, data_size

_LOGGER = logging.getLogger("audiorepeat.repeat")


class RepeatPass(BaseModel):
    """Emitted after each block copy; `index` is 1-based."""

    index: int
    count: int
    frames_written: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def fraction(self) -> float:
        return self.index / self.count


def validate_count(count: int) -> int:
    if isinstance(count, bool) or not isinstance(count, (int, np.integer)):
        raise InvalidParameterError(f"repeat count must be an integer, got {type(count).__name__}")
    if count < 1:
        raise InvalidParameterError(f"repeat count must be >= 1, got {count}")
    return int(count)


def check_output_size(buffer: SampleBuffer, count: int) -> int:
    """Return the repeated frame count, refusing outputs a WAV file cannot hold."""

    frames = buffer.frame_count * count
    if data_size(buffer.channel_count, frames) > MAX_DATA_BYTES:
        raise ResourceLimitExceededError(
            f"{count} repeats of {buffer.frame_count} frames exceed the WAV size limit",
            projected_frames=frames,
            limit=MAX_DATA_BYTES // (buffer.channel_count * 2),
        )
    return frames


def iter_repeat(buffer: SampleBuffer, count: int) -> Iterator[RepeatPass | SampleBuffer]:
    """Copy the source into a preallocated output one block per pass.

    Yields a `RepeatPass` after every block and the finished buffer last.
    """

    count = validate_count(count)
    if count == 1:
        yield RepeatPass(index=1, count=1, frames_written=buffer.frame_count)
        yield buffer
        return

    total = check_output_size(buffer, count)
    block = buffer.frame_count
    out = np.empty((buffer.channel_count, total), dtype=np.float32)
    for index in range(count):
        start = index * block
        out[:, start : start + block] = buffer.samples
        yield RepeatPass(index=index + 1, count=count, frames_written=start + block)

    _LOGGER.debug("Repeated %d frames x%d -> %d frames", block, count, total)
    out.setflags(write=False)
    yield SampleBuffer(samples=out, sample_rate=buffer.sample_rate)


def repeat(buffer: SampleBuffer, count: int) -> SampleBuffer:
    """Concatenate every channel with itself `count` times."""

    result: SampleBuffer | None = None
    for item in iter_repeat(buffer, count):
        if isinstance(item, SampleBuffer):
            result = item
    assert result is not None
    return result
