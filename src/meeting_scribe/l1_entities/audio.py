"""Audio segment entities."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class MediaHandle(BaseModel):
    """Opaque reference to bytes on disk: a source recording or a cut slice."""

    path: Path
    size: int = Field(ge=0, description='Size in bytes, known without reading the payload')
    mime_type: str = 'application/octet-stream'
    is_temporary: bool = False

    model_config = {'frozen': True}

    @property
    def name(self) -> str:
        return self.path.name


class AudioSegment(BaseModel):
    """One time window of the source recording.

    ``start_time``/``end_time`` are canonical, non-overlapping bounds used for
    stitching. ``overlap_start``/``overlap_end`` say how much extra audio is
    sent to the transcriber on each side.
    """

    index: int = Field(ge=0)
    start_time: float
    end_time: float
    duration: float = Field(description='Length of the transmitted range in seconds')
    overlap_start: float = 0.0
    overlap_end: float = 0.0
    payload: MediaHandle | None = None

    model_config = {'frozen': True}

    @property
    def transmit_start(self) -> float:
        return self.start_time - self.overlap_start

    @property
    def transmit_end(self) -> float:
        return self.end_time + self.overlap_end

    def with_payload(self, payload: MediaHandle) -> AudioSegment:
        return self.model_copy(update={'payload': payload})
