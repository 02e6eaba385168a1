import numpy as np
import pytest

from audiorepeat.buffer import SampleBuffer
from audiorepeat.errors import InvalidParameterError, ResourceLimitExceededError
from audiorepeat.repeat import RepeatPass, check_output_size, iter_repeat, repeat


def _stereo() -> SampleBuffer:
    return SampleBuffer.from_channels([[0.1, 0.2, 0.3], [-0.1, -0.2, -0.3]], 44_100)


def test_single_repeat_is_identity() -> None:
    buffer = _stereo()
    assert repeat(buffer, 1) is buffer


def test_repeat_concatenates_each_channel() -> None:
    buffer = _stereo()
    result = repeat(buffer, 3)

    assert result.frame_count == buffer.frame_count * 3
    assert result.channel_count == 2
    assert result.sample_rate == buffer.sample_rate
    assert np.array_equal(result.samples, np.tile(buffer.samples, (1, 3)))
    assert not result.samples.flags.writeable


def test_iter_repeat_reports_each_pass() -> None:
    items = list(iter_repeat(_stereo(), 4))

    passes = [item for item in items if isinstance(item, RepeatPass)]
    assert [p.index for p in passes] == [1, 2, 3, 4]
    assert [p.frames_written for p in passes] == [3, 6, 9, 12]
    assert passes[-1].fraction == 1.0
    assert isinstance(items[-1], SampleBuffer)


def test_repeat_of_empty_buffer_stays_empty() -> None:
    empty = SampleBuffer(samples=np.zeros((1, 0), dtype=np.float32), sample_rate=44_100)
    assert repeat(empty, 5).frame_count == 0


@pytest.mark.parametrize("count", [0, -2, 1.5, True, "3"])
def test_invalid_count_rejected(count: object) -> None:
    with pytest.raises(InvalidParameterError):
        repeat(_stereo(), count)  # type: ignore[arg-type]


def test_oversized_output_refused_before_allocating() -> None:
    buffer = SampleBuffer.silence(2, 1_000, 44_100)
    with pytest.raises(ResourceLimitExceededError) as info:
        repeat(buffer, 2**22)
    assert info.value.projected_frames == 1_000 * 2**22


def test_check_output_size_returns_frames() -> None:
    assert check_output_size(_stereo(), 5) == 15
