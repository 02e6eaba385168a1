from __future__ import annotations

import math
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import AudioRepeatError, InvalidParameterError, JobCancelledError, ProcessingError

JobState = Literal[
    "idle",
    "decoding",
    "transforming_speed",
    "repeating",
    "encoding",
    "ready",
    "failed",
    "cancelled",
]
TerminalState = Literal["ready", "failed", "cancelled"]

DEFAULT_FILENAME = "repeated_audio.wav"
WAV_MIME_TYPE = "audio/wav"


class ProcessingRequest(BaseModel):
    """Immutable input to one job."""

    data: bytes = Field(strict=True, repr=False)
    speed_factor: float = Field(default=1.0, gt=0.0, allow_inf_nan=False)
    repeat_count: int = Field(default=1, ge=1, strict=True)
    source_name: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("speed_factor", mode="before")
    @classmethod
    def _reject_non_numeric_speed(cls, value: object) -> object:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("speed_factor must be a number")
        return value

    @classmethod
    def create(
        cls,
        data: bytes,
        *,
        speed_factor: float = 1.0,
        repeat_count: int = 1,
        source_name: str | None = None,
    ) -> "ProcessingRequest":
        """Build a request, raising InvalidParameterError on bad parameters."""

        try:
            return cls(
                data=data,
                speed_factor=speed_factor,
                repeat_count=repeat_count,
                source_name=source_name,
            )
        except ValidationError as exc:
            fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
            raise InvalidParameterError(f"Invalid processing parameters ({fields}): {exc}") from exc


class EncodedAudio(BaseModel):
    data: bytes = Field(repr=False)
    mime_type: str = WAV_MIME_TYPE
    filename: str = DEFAULT_FILENAME
    frame_count: int = Field(ge=0)
    channel_count: int = Field(ge=1)
    sample_rate: int = Field(gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate

    @property
    def size(self) -> int:
        return len(self.data)

    def save(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.data)
        return target


class JobProgress(BaseModel):
    percent: float = Field(ge=0.0, le=100.0)
    phase: str
    state: JobState

    model_config = ConfigDict(frozen=True, extra="forbid")


class OutputEstimate(BaseModel):
    """Projected size of a job's output, shown to the large-output prompt."""

    projected_frames: int = Field(ge=0)
    sample_rate: int = Field(gt=0)
    channel_count: int = Field(ge=1)
    threshold: int = Field(gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def minutes(self) -> int:
        return round(self.projected_frames / self.sample_rate / 60)

    @property
    def exceeds_threshold(self) -> bool:
        return self.projected_frames > self.threshold

    def describe(self) -> str:
        return f"Large output (~{self.minutes} min). Processing may take a while. Continue?"


def project_frames(frame_count: int, speed_factor: float, repeat_count: int) -> int:
    """Projected output frames: the speed change is applied before repeating."""

    if speed_factor == 1.0 or frame_count <= 0:
        return max(frame_count, 0) * repeat_count
    raw = frame_count / speed_factor
    if not math.isfinite(raw):
        # The speed step will fail and fall back to the original buffer.
        return frame_count * repeat_count
    # Resampling never shortens a non-empty buffer below one frame.
    return max(1, math.floor(raw)) * repeat_count


class JobResult(BaseModel):
    state: TerminalState
    audio: EncodedAudio | None = None
    error: AudioRepeatError | None = None
    warnings: tuple[str, ...] = ()
    reason: str | None = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    @property
    def ok(self) -> bool:
        return self.state == "ready" and self.audio is not None

    def unwrap(self) -> EncodedAudio:
        match self.state:
            case "ready" if self.audio is not None:
                return self.audio
            case "cancelled":
                raise JobCancelledError(self.reason or "Job cancelled")
            case _:
                if self.error is not None:
                    raise self.error
                raise ProcessingError("Job produced no output")
