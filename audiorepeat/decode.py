from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

import numpy as np
import soundfile as sf  # type: ignore[import]

from .buffer import SampleBuffer
from .errors import DecodeError, InvalidParameterError

_LOGGER = logging.getLogger("audiorepeat.decode")


@runtime_checkable
class Decoder(Protocol):
    def decode(self, data: bytes) -> SampleBuffer: ...


class SoundfileDecoder:
    """Decode any container/codec libsndfile supports (WAV, FLAC, OGG, MP3, ...)."""

    def decode(self, data: bytes) -> SampleBuffer:
        if not data:
            raise DecodeError("No audio data to decode")
        try:
            frames, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
        except (sf.LibsndfileError, RuntimeError, TypeError) as exc:
            _LOGGER.warning("Decoding failed: %s", exc, exc_info=True)
            raise DecodeError(f"Unable to decode audio: {exc}") from exc

        if frames.ndim != 2 or frames.shape[1] < 1:
            raise DecodeError("Decoded audio has no channels")
        channel_major = np.ascontiguousarray(frames.T)
        channel_major.setflags(write=False)
        try:
            buffer = SampleBuffer(samples=channel_major, sample_rate=int(sample_rate))
        except InvalidParameterError as exc:
            raise DecodeError(f"Decoded audio is unusable: {exc}") from exc
        _LOGGER.info(
            "Decoded %d channel(s), %d frames at %d Hz (%.2fs)",
            buffer.channel_count,
            buffer.frame_count,
            buffer.sample_rate,
            buffer.duration,
        )
        return buffer


def decode_audio(data: bytes) -> SampleBuffer:
    return SoundfileDecoder().decode(data)


def read_file(path: str | Path) -> bytes:
    target = Path(path)
    try:
        return target.read_bytes()
    except OSError as exc:
        raise DecodeError(f"Cannot read {target}: {exc}") from exc
