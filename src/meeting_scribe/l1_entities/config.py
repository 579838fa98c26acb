"""Configuration Pydantic models: pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, Field

from meeting_scribe.l1_entities.retry_policy import RetryPolicy


class SegmentationConfig(BaseModel):
    window_duration: float = Field(gt=0)
    overlap_duration: float = Field(ge=0)
    max_concurrent_segments: int = Field(ge=1)


class TransportConfig(BaseModel):
    chunk_size: int = Field(gt=0)
    multipart_chunk_size: int = Field(gt=0)
    max_upload_size: int = Field(gt=0)  # provider per-request limit
    timeout: float = Field(gt=0)


class TranscriptionConfig(BaseModel):
    model: str
    language: str | None = None


class SummaryConfig(BaseModel):
    enabled: bool
    model: str
    temperature: float
    max_tokens: int


class RetryConfig(BaseModel):
    transcription: RetryPolicy
    summary: RetryPolicy
    upload: RetryPolicy


class LimitsConfig(BaseModel):
    max_file_size: int = Field(gt=0)
    max_duration_minutes: float = Field(gt=0)


class OutputConfig(BaseModel):
    directory: str


class AppConfig(BaseModel):
    segmentation: SegmentationConfig
    transport: TransportConfig
    transcription: TranscriptionConfig
    summary: SummaryConfig
    retry: RetryConfig
    limits: LimitsConfig
    output: OutputConfig
