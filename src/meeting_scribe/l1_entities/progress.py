"""Progress snapshot entity."""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field


class Stage(enum.Enum):
    SEGMENTING = 'segmenting'
    TRANSCRIBING = 'transcribing'
    STITCHING = 'stitching'
    COMPLETE = 'complete'


# Stages that carry weight in the overall percentage; COMPLETE is terminal.
WEIGHTED_STAGES: tuple[Stage, ...] = (Stage.SEGMENTING, Stage.TRANSCRIBING, Stage.STITCHING)


class ProgressState(BaseModel):
    """One immutable point in a run's progress stream."""

    stage: Stage
    percentage: int = Field(ge=0, le=100)
    message: str = ''
    completed_stages: frozenset[Stage] = frozenset()
    stage_progress: int | None = Field(default=None, ge=0, le=100)
    retry_attempt: int | None = None
    retry_countdown_seconds: int | None = None
    completed_segments: int | None = None
    total_segments: int | None = None

    model_config = {'frozen': True}
