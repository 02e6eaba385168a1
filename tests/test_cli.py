from pathlib import Path

import numpy as np
import pytest

import audiorepeat.cli as cli
from audiorepeat.wav import parse_header


def _write_input(tmp_path: Path, wav_bytes, frames: int = 100) -> Path:
    samples = np.stack([np.full(frames, 0.1), np.full(frames, -0.1)], axis=1).astype(np.float32)
    path = tmp_path / "clip.wav"
    path.write_bytes(wav_bytes(samples, sample_rate=8_000))
    return path


def test_repeat_writes_output(tmp_path: Path, wav_bytes) -> None:
    source = _write_input(tmp_path, wav_bytes)
    target = tmp_path / "looped.wav"

    code = cli.main(["repeat", str(source), "--repeats", "3", "--output", str(target)])

    assert code == 0
    header = parse_header(target.read_bytes())
    assert header.frame_count == 300
    assert header.channel_count == 2


def test_repeat_with_speed(tmp_path: Path, wav_bytes) -> None:
    source = _write_input(tmp_path, wav_bytes)
    target = tmp_path / "fast.wav"

    assert cli.main(["repeat", str(source), "-n", "2", "-s", "2", "-o", str(target)]) == 0
    assert parse_header(target.read_bytes()).frame_count == 100


def test_large_output_declined(
    tmp_path: Path,
    wav_bytes,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("AUDIOREPEAT_LARGE_OUTPUT_THRESHOLD", "10")
    monkeypatch.setattr(cli.Confirm, "ask", lambda *args, **kwargs: False)
    source = _write_input(tmp_path, wav_bytes)
    target = tmp_path / "never.wav"

    code = cli.main(["repeat", str(source), "-n", "5", "-o", str(target)])

    assert code == 1
    assert not target.exists()
    assert "Cancelled" in capsys.readouterr().out


def test_large_output_auto_confirmed(
    tmp_path: Path,
    wav_bytes,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("AUDIOREPEAT_LARGE_OUTPUT_THRESHOLD", "10")
    source = _write_input(tmp_path, wav_bytes)
    target = tmp_path / "big.wav"

    assert cli.main(["repeat", str(source), "-n", "5", "-o", str(target), "--yes"]) == 0
    assert target.exists()


def test_invalid_repeat_count_fails(
    tmp_path: Path,
    wav_bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    source = _write_input(tmp_path, wav_bytes)

    assert cli.main(["repeat", str(source), "-n", "0", "-o", str(tmp_path / "x.wav")]) == 1
    assert "InvalidParameterError" in capsys.readouterr().err


def test_missing_input_fails(tmp_path: Path) -> None:
    assert cli.main(["repeat", str(tmp_path / "nope.mp3")]) == 1


def test_info_prints_layout(
    tmp_path: Path,
    wav_bytes,
    capsys: pytest.CaptureFixture[str],
) -> None:
    source = _write_input(tmp_path, wav_bytes, frames=8_000)

    assert cli.main(["info", str(source)]) == 0
    out = capsys.readouterr().out
    assert "Channels: 2" in out
    assert "8000 Hz" in out
    assert "1.00s" in out
