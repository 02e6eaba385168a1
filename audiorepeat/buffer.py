from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import InvalidParameterError

FloatArray = NDArray[np.float32]
ChannelData = NDArray[np.floating[Any]] | Sequence[float]


def as_channel_major(samples: ChannelData | Sequence[ChannelData]) -> FloatArray:
    """Coerce samples into a read-only float32 array of shape (channels, frames)."""

    try:
        array: FloatArray = np.asarray(samples, dtype=np.float32)
    except ValueError as exc:
        raise InvalidParameterError("channels must all have the same length") from exc
    match array.ndim:
        case 1:
            array = array.reshape(1, -1)
        case 2:
            pass
        case _:
            raise InvalidParameterError(f"samples must be 1-D or 2-D, got {array.ndim}-D")
    if array.shape[0] < 1:
        raise InvalidParameterError("a sample buffer needs at least one channel")
    if array.size and not np.all(np.isfinite(array)):
        raise InvalidParameterError("samples must be finite")
    if array.flags.writeable:
        # Read-only arrays already belong to a buffer; anything else is copied.
        array = array.copy()
        array.setflags(write=False)
    return array


class SampleBuffer(BaseModel):
    """Multi-channel float audio, stored channel-major."""

    samples: FloatArray
    sample_rate: int = Field(gt=0)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _coerce_samples(cls, data: Any) -> Any:
        if isinstance(data, dict) and "samples" in data:
            coerced = dict(data)
            coerced["samples"] = as_channel_major(coerced["samples"])
            return coerced
        return data

    @classmethod
    def from_channels(
        cls,
        channels: Sequence[ChannelData],
        sample_rate: int,
    ) -> "SampleBuffer":
        if not channels:
            raise InvalidParameterError("a sample buffer needs at least one channel")
        lengths = {len(channel) for channel in channels}
        if len(lengths) != 1:
            raise InvalidParameterError(
                f"channels must all have the same length, got {sorted(lengths)}"
            )
        return cls(samples=[np.asarray(c, dtype=np.float32) for c in channels], sample_rate=sample_rate)

    @classmethod
    def silence(cls, channel_count: int, frame_count: int, sample_rate: int) -> "SampleBuffer":
        if channel_count < 1 or frame_count < 0:
            raise InvalidParameterError("channel_count must be >= 1 and frame_count >= 0")
        return cls(
            samples=np.zeros((channel_count, frame_count), dtype=np.float32),
            sample_rate=sample_rate,
        )

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> FloatArray:
        return self.samples[index]

    def __repr__(self) -> str:
        return (
            f"SampleBuffer(channels={self.channel_count}, frames={self.frame_count}, "
            f"sample_rate={self.sample_rate})"
        )
