from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from .models import EncodedAudio

_LOGGER = logging.getLogger("audiorepeat.sinks")


class Sink(Protocol):
    def __call__(self, audio: EncodedAudio) -> None: ...


class FileSink:
    """Write finished audio to `path`, or to the audio's own filename inside a directory."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self.written: Path | None = None

    def __call__(self, audio: EncodedAudio) -> None:
        target = self._path / audio.filename if self._path.is_dir() else self._path
        self.written = audio.save(target)
        _LOGGER.info("Wrote %d bytes to %s", audio.size, self.written)


class MemorySink:
    def __init__(self) -> None:
        self.audio: EncodedAudio | None = None

    def __call__(self, audio: EncodedAudio) -> None:
        self.audio = audio
