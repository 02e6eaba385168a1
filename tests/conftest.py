from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
import soundfile as sf  # type: ignore[import]

WavFactory = Callable[..., bytes]


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUDIOREPEAT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("AUDIOREPEAT_LARGE_OUTPUT_THRESHOLD", raising=False)
    monkeypatch.delenv("AUDIOREPEAT_OUTPUT_FILENAME", raising=False)
    monkeypatch.delenv("AUDIOREPEAT_DEBUG", raising=False)


@pytest.fixture
def wav_bytes() -> WavFactory:
    """Encode (frames, channels) samples with libsndfile."""

    def _encode(samples: np.ndarray, sample_rate: int = 44_100, subtype: str = "PCM_16") -> bytes:
        handle = io.BytesIO()
        sf.write(handle, samples, sample_rate, format="WAV", subtype=subtype)
        return handle.getvalue()

    return _encode
