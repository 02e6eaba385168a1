from __future__ import annotations

from .buffer import SampleBuffer
from .config import PipelineSettings
from .decode import Decoder, SoundfileDecoder, decode_audio
from .errors import (
    AudioRepeatError,
    DecodeError,
    EncodeError,
    InvalidParameterError,
    JobCancelledError,
    ProcessingError,
    ResourceLimitExceededError,
    SpeedTransformError,
)
from .logging_utils import configure_logging as _configure_logging
from .models import (
    EncodedAudio,
    JobProgress,
    JobResult,
    JobState,
    OutputEstimate,
    ProcessingRequest,
)
from .pipeline import Pipeline, PipelineHooks
from .repeat import repeat
from .sinks import FileSink, MemorySink
from .speed import apply_speed
from .wav import encode

__all__ = [
    "AudioRepeatError",
    "DecodeError",
    "Decoder",
    "EncodeError",
    "EncodedAudio",
    "FileSink",
    "InvalidParameterError",
    "JobCancelledError",
    "JobProgress",
    "JobResult",
    "JobState",
    "MemorySink",
    "OutputEstimate",
    "Pipeline",
    "PipelineHooks",
    "PipelineSettings",
    "ProcessingError",
    "ProcessingRequest",
    "ResourceLimitExceededError",
    "SampleBuffer",
    "SoundfileDecoder",
    "SpeedTransformError",
    "apply_speed",
    "decode_audio",
    "encode",
    "repeat",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
