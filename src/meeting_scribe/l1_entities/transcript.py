"""Transcript entities: provider output, per-segment results, and the stitched transcript."""

from __future__ import annotations

from pydantic import BaseModel, Field


def format_wall_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f'{hours:02d}:{minutes:02d}:{secs:02d}'


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS, or HH:MM:SS once past the hour."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f'{hours:02d}:{minutes:02d}:{secs:02d}'
    return f'{minutes:02d}:{secs:02d}'


def count_words(text: str) -> int:
    return len(text.split())


class ProviderSpan(BaseModel):
    """A span as returned by the transcription API, relative to the uploaded audio."""

    text: str
    start_offset: float
    end_offset: float


class ProviderTranscription(BaseModel):
    duration_seconds: float = 0.0
    spans: list[ProviderSpan] = Field(default_factory=list)


class TextSpan(BaseModel):
    """A transcribed span placed on the full-recording timeline."""

    text: str
    relative_timestamp: float = Field(description='Seconds from the canonical start of its segment')
    duration: float = 0.0
    absolute_start: float = Field(description='Seconds from the start of the full recording')

    model_config = {'frozen': True}

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.absolute_start)


class TranscriptionSegment(BaseModel):
    """Result of transcribing one AudioSegment."""

    index: int
    start_time: float
    end_time: float
    spans: list[TextSpan] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return ' '.join(span.text for span in self.spans)


class Transcript(BaseModel):
    """Stitched transcript handed back to the caller."""

    title: str = ''
    spans: list[TextSpan] = Field(default_factory=list)
    word_count: int = 0
    duration_seconds: float = 0.0
    segment_count: int = 0

    @property
    def duration(self) -> str:
        return format_wall_time(self.duration_seconds)

    @property
    def text(self) -> str:
        return ' '.join(span.text for span in self.spans)

    def lines(self) -> list[str]:
        return [f'[{span.timestamp}] {span.text}' for span in self.spans]
