from __future__ import annotations


class AudioRepeatError(Exception):
    """Base error for the audiorepeat library."""


class InvalidParameterError(AudioRepeatError):
    """Raised when a repeat count, speed factor or buffer is rejected before processing."""


class DecodeError(AudioRepeatError):
    """Raised when input bytes cannot be decoded into samples."""


class SpeedTransformError(AudioRepeatError):
    """Raised when resampling would produce a degenerate buffer."""


class ResourceLimitExceededError(AudioRepeatError):
    """Raised when a projected output is larger than allowed."""

    def __init__(self, message: str, *, projected_frames: int, limit: int) -> None:
        super().__init__(message)
        self.projected_frames = projected_frames
        self.limit = limit


class EncodeError(AudioRepeatError):
    """Raised when a buffer cannot be serialized into a PCM container."""


class ProcessingError(AudioRepeatError):
    """Raised for unexpected failures while a job is running."""


class JobCancelledError(AudioRepeatError):
    """Raised when unwrapping the result of a cancelled job."""
