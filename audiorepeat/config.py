from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidParameterError
from .models import DEFAULT_FILENAME

_LOGGER = logging.getLogger("audiorepeat.config")

DEFAULT_LARGE_OUTPUT_THRESHOLD = 100_000_000
THRESHOLD_ENV = "AUDIOREPEAT_LARGE_OUTPUT_THRESHOLD"
FILENAME_ENV = "AUDIOREPEAT_OUTPUT_FILENAME"
DEBUG_ENV = "AUDIOREPEAT_DEBUG"


class PipelineSettings(BaseModel):
    """Tunables for the pipeline; frame counts are per channel."""

    large_output_threshold: int = Field(default=DEFAULT_LARGE_OUTPUT_THRESHOLD, gt=0)
    output_filename: str = Field(default=DEFAULT_FILENAME, min_length=1)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PipelineSettings":
        env = os.environ if environ is None else environ
        payload: dict[str, str] = {}
        if threshold := env.get(THRESHOLD_ENV):
            payload["large_output_threshold"] = threshold
        if filename := env.get(FILENAME_ENV):
            payload["output_filename"] = filename
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            _LOGGER.warning("Failed to parse settings from environment: %s", exc, exc_info=True)
            raise InvalidParameterError(str(exc)) from exc


def debug_enabled() -> bool:
    return bool(os.environ.get(DEBUG_ENV))
