from pathlib import Path

import numpy as np
import pytest

from audiorepeat.buffer import SampleBuffer
from audiorepeat.decode import Decoder, SoundfileDecoder, decode_audio, read_file
from audiorepeat.errors import DecodeError
from audiorepeat.wav import encode


def test_decodes_stereo_pcm(wav_bytes) -> None:
    frames = np.stack(
        [np.linspace(-0.5, 0.5, 100), np.linspace(0.5, -0.5, 100)],
        axis=1,
    ).astype(np.float32)

    buffer = decode_audio(wav_bytes(frames, sample_rate=22_050))

    assert buffer.channel_count == 2
    assert buffer.frame_count == 100
    assert buffer.sample_rate == 22_050
    assert np.allclose(buffer.channel(0), frames[:, 0], atol=1e-3)
    assert np.allclose(buffer.channel(1), frames[:, 1], atol=1e-3)


def test_decodes_float_wav(wav_bytes) -> None:
    frames = np.linspace(-1.0, 1.0, 64, dtype=np.float32).reshape(-1, 1)
    buffer = decode_audio(wav_bytes(frames, subtype="FLOAT"))
    assert buffer.channel_count == 1
    assert np.allclose(buffer.channel(0), frames[:, 0])


def test_decodes_own_output() -> None:
    original = SampleBuffer.from_channels([[0.25, -0.25, 0.75, -1.0]], 16_000)
    buffer = decode_audio(encode(original).data)

    assert buffer.sample_rate == 16_000
    assert buffer.frame_count == 4
    # libsndfile scales PCM_16 by 1/32768 on read.
    assert np.allclose(buffer.channel(0), original.channel(0), atol=2.0 / 32767.0)


@pytest.mark.parametrize("payload", [b"", b"not audio at all", b"RIFF\x00\x00"])
def test_garbage_raises_decode_error(payload: bytes) -> None:
    with pytest.raises(DecodeError):
        decode_audio(payload)


def test_read_file_missing_path(tmp_path: Path) -> None:
    with pytest.raises(DecodeError):
        read_file(tmp_path / "missing.mp3")


def test_soundfile_decoder_satisfies_protocol() -> None:
    assert isinstance(SoundfileDecoder(), Decoder)
