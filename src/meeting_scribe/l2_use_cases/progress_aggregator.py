"""Overall progress as a pure function of stage completion, plus a per-run snapshot stream."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

from meeting_scribe.l1_entities.progress import WEIGHTED_STAGES, ProgressState, Stage

log = logging.getLogger('msc.pipeline')

ProgressListener = Callable[[ProgressState], None]


def overall_percent(completed_stage_count: int, total_stages: int, current_stage_progress: float) -> int:
    stage_weight = 100 / total_stages
    overall = round(completed_stage_count * stage_weight + current_stage_progress * stage_weight / 100)
    return max(0, min(100, overall))


class ProgressTracker:
    """Append-only stream of immutable ProgressState snapshots for one run.

    Only the pipeline emits; listeners receive each snapshot as it is
    appended. The reported percentage never goes down.
    """

    def __init__(
        self,
        listener: ProgressListener | None = None,
        stages: tuple[Stage, ...] = WEIGHTED_STAGES,
    ) -> None:
        self._listener = listener
        self._stages = stages
        self._completed: frozenset[Stage] = frozenset()
        self._history: list[ProgressState] = []
        self._last_percentage = 0
        self._stage_progress: dict[Stage, int] = {}

    @property
    def history(self) -> tuple[ProgressState, ...]:
        return tuple(self._history)

    @property
    def latest(self) -> ProgressState | None:
        return self._history[-1] if self._history else None

    @property
    def completed_stages(self) -> frozenset[Stage]:
        return self._completed

    def __iter__(self) -> Iterator[ProgressState]:
        return iter(list(self._history))

    def emit(
        self,
        stage: Stage,
        message: str,
        stage_progress: float | None = None,
        *,
        retry_attempt: int | None = None,
        retry_countdown_seconds: int | None = None,
        completed_segments: int | None = None,
        total_segments: int | None = None,
    ) -> ProgressState:
        if stage is Stage.COMPLETE:
            self._completed = frozenset(self._stages) | {Stage.COMPLETE}
            percentage = 100
            current = 100
        else:
            previous = self._stage_progress.get(stage, 0)
            current = previous if stage_progress is None else max(previous, int(round(stage_progress)))
            current = min(100, current)
            self._stage_progress[stage] = current
            computed = overall_percent(len(self._completed & set(self._stages)), len(self._stages), current)
            percentage = max(self._last_percentage, computed)

        self._last_percentage = percentage
        state = ProgressState(
            stage=stage,
            percentage=percentage,
            message=message,
            completed_stages=self._completed,
            stage_progress=current,
            retry_attempt=retry_attempt,
            retry_countdown_seconds=retry_countdown_seconds,
            completed_segments=completed_segments,
            total_segments=total_segments,
        )
        self._history.append(state)
        log.debug('Progress %3d%% [%s] %s', percentage, stage.value, message)
        if self._listener is not None:
            self._listener(state)
        return state

    def complete_stage(self, stage: Stage) -> None:
        self._stage_progress[stage] = 100
        self._completed = self._completed | {stage}
