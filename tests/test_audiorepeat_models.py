import pytest

from audiorepeat.errors import InvalidParameterError
from audiorepeat.models import (
    EncodedAudio,
    JobResult,
    OutputEstimate,
    ProcessingRequest,
    project_frames,
)


def test_request_defaults() -> None:
    request = ProcessingRequest.create(b"abc")
    assert request.speed_factor == 1.0
    assert request.repeat_count == 1


def test_request_accepts_integer_speed() -> None:
    assert ProcessingRequest.create(b"abc", speed_factor=2).speed_factor == 2.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"repeat_count": True},
        {"repeat_count": 2.5},
        {"repeat_count": "3"},
        {"speed_factor": "fast"},
        {"speed_factor": False},
    ],
)
def test_request_rejects_loose_types(kwargs: dict[str, object]) -> None:
    with pytest.raises(InvalidParameterError):
        ProcessingRequest.create(b"abc", **kwargs)  # type: ignore[arg-type]


def test_request_is_frozen() -> None:
    request = ProcessingRequest.create(b"abc", repeat_count=2)
    with pytest.raises(Exception):
        request.repeat_count = 3  # type: ignore[misc]


def test_project_frames_applies_speed_first() -> None:
    assert project_frames(1_000, 1.0, 3) == 3_000
    assert project_frames(1_001, 2.0, 3) == 1_500


def test_project_frames_matches_resampled_length() -> None:
    assert project_frames(1, 2.0, 3) == 3
    assert project_frames(10, 1_000.0, 1) == 1
    assert project_frames(0, 2.0, 5) == 0
    assert project_frames(10, 1e-320, 2) == 20


def test_output_estimate_minutes() -> None:
    estimate = OutputEstimate(
        projected_frames=44_100 * 60 * 40,
        sample_rate=44_100,
        channel_count=2,
        threshold=100_000_000,
    )
    assert estimate.minutes == 40
    assert estimate.exceeds_threshold
    assert "~40 min" in estimate.describe()


def test_encoded_audio_save(tmp_path) -> None:
    audio = EncodedAudio(data=b"RIFF", frame_count=0, channel_count=1, sample_rate=8_000)
    path = audio.save(tmp_path / "nested" / "out.wav")
    assert path.read_bytes() == b"RIFF"


def test_failed_result_without_error_still_raises() -> None:
    with pytest.raises(Exception):
        JobResult(state="failed").unwrap()
