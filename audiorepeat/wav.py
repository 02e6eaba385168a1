from __future__ import annotations

import logging
import struct
from typing import Any

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict

from .buffer import SampleBuffer
from .errors import EncodeError
from .models import DEFAULT_FILENAME, WAV_MIME_TYPE, EncodedAudio

_LOGGER = logging.getLogger("audiorepeat.wav")

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
PCM_FORMAT = 1
# RIFF size field is u32 and holds 36 + data bytes.
MAX_DATA_BYTES = 0xFFFFFFFF - 36
ENCODE_BLOCK_FRAMES = 1 << 16

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class WavHeader(BaseModel):
    riff_size: int
    format_code: int
    channel_count: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_bytes: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def frame_count(self) -> int:
        return self.data_bytes // self.block_align


def data_size(channel_count: int, frame_count: int) -> int:
    return frame_count * channel_count * BYTES_PER_SAMPLE


def header(channel_count: int, sample_rate: int, frame_count: int) -> bytes:
    """Pack the 44-byte canonical PCM header."""

    data_bytes = data_size(channel_count, frame_count)
    if data_bytes > MAX_DATA_BYTES:
        raise EncodeError(
            f"{frame_count} frames x {channel_count} channels needs {data_bytes} data bytes; "
            f"a WAV container holds at most {MAX_DATA_BYTES}"
        )
    byte_rate = sample_rate * channel_count * BYTES_PER_SAMPLE
    if byte_rate > 0xFFFFFFFF or channel_count > 0xFFFF // BYTES_PER_SAMPLE:
        raise EncodeError(f"Unsupported layout: {channel_count} channels at {sample_rate} Hz")
    return _HEADER.pack(
        b"RIFF",
        36 + data_bytes,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        channel_count,
        sample_rate,
        byte_rate,
        channel_count * BYTES_PER_SAMPLE,
        BITS_PER_SAMPLE,
        b"data",
        data_bytes,
    )


def quantize(samples: NDArray[np.floating[Any]]) -> NDArray[np.int16]:
    """Clamp to [-1, 1] and scale asymmetrically, truncating toward zero.

    Negative values scale by 32768 and the rest by 32767, so -1.0 maps to
    -32768 and 1.0 maps to 32767 without overflow.
    """

    scaled = np.array(samples, dtype=np.float64)
    np.clip(scaled, -1.0, 1.0, out=scaled)
    negative = scaled < 0.0
    np.multiply(scaled, 32768.0, out=scaled, where=negative)
    np.multiply(scaled, 32767.0, out=scaled, where=~negative)
    np.trunc(scaled, out=scaled)
    return scaled.astype(np.int16)


def encode(buffer: SampleBuffer, *, filename: str = DEFAULT_FILENAME) -> EncodedAudio:
    """Serialize a buffer as 16-bit little-endian interleaved PCM WAV.

    Samples are quantized `ENCODE_BLOCK_FRAMES` frames at a time straight
    into the output, so only one block of float temporaries is alive at once.
    """

    channels, frames = buffer.channel_count, buffer.frame_count
    head = header(channels, buffer.sample_rate, frames)
    out = bytearray(HEADER_SIZE + data_size(channels, frames))
    out[:HEADER_SIZE] = head
    if frames:
        # Frame-major, channel-minor interleave.
        pcm = np.frombuffer(out, dtype="<i2", offset=HEADER_SIZE).reshape(frames, channels)
        for start in range(0, frames, ENCODE_BLOCK_FRAMES):
            stop = min(start + ENCODE_BLOCK_FRAMES, frames)
            pcm[start:stop] = quantize(buffer.samples[:, start:stop]).T
    payload = bytes(out)
    _LOGGER.debug(
        "Encoded %d frames x %d channels (%d bytes)",
        frames,
        channels,
        len(payload),
    )
    return EncodedAudio(
        data=payload,
        mime_type=WAV_MIME_TYPE,
        filename=filename,
        frame_count=frames,
        channel_count=channels,
        sample_rate=buffer.sample_rate,
    )


def parse_header(data: bytes) -> WavHeader:
    """Read back a header written by `header`; rejects anything else."""

    if len(data) < HEADER_SIZE:
        raise EncodeError(f"WAV header needs {HEADER_SIZE} bytes, got {len(data)}")
    (
        riff,
        riff_size,
        wave,
        fmt,
        fmt_size,
        format_code,
        channel_count,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        data_tag,
        data_bytes,
    ) = _HEADER.unpack_from(data, 0)
    if (riff, wave, fmt, data_tag) != (b"RIFF", b"WAVE", b"fmt ", b"data") or fmt_size != 16:
        raise EncodeError("Not a canonical PCM WAV header")
    return WavHeader(
        riff_size=riff_size,
        format_code=format_code,
        channel_count=channel_count,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_bytes=data_bytes,
    )


def decode_samples(data: bytes) -> NDArray[np.int16]:
    """Return the int16 payload of an encoded file as (frames, channels)."""

    parsed = parse_header(data)
    body = np.frombuffer(data, dtype="<i2", offset=HEADER_SIZE, count=parsed.data_bytes // 2)
    return body.reshape(-1, parsed.channel_count)
