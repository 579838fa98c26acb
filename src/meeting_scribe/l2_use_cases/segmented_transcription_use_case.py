"""Use case: segmented transcription of one recording, from duration probe to stitched transcript."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import PurePath

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.config import SegmentationConfig
from meeting_scribe.l1_entities.errors import ScribeError, SegmentationError
from meeting_scribe.l1_entities.progress import Stage
from meeting_scribe.l1_entities.retry_policy import RetryPolicy
from meeting_scribe.l1_entities.transcript import Transcript, TranscriptionSegment
from meeting_scribe.l2_use_cases.concurrency_limiter import ConcurrencyLimiter
from meeting_scribe.l2_use_cases.ports.audio_slicer import AudioSlicer
from meeting_scribe.l2_use_cases.ports.transcription_api import TranscriptionApi
from meeting_scribe.l2_use_cases.progress_aggregator import ProgressListener, ProgressTracker
from meeting_scribe.l2_use_cases.segment_transcriber import (
    SEGMENT_RETRY_POLICY,
    SegmentCallbacks,
    SegmentTranscriber,
    transcribe_all,
)
from meeting_scribe.l2_use_cases.segmenter import segment_duration, should_segment
from meeting_scribe.l2_use_cases.stitcher import stitch
from meeting_scribe.l2_use_cases.utils.retry import RetryExecutor

log = logging.getLogger('msc.pipeline')

# Share of a segment's progress attributed to the upload; the rest lands on completion.
_UPLOAD_SHARE = 0.5


def transcript_title(filename: str, segmented: bool) -> str:
    stem = PurePath(filename).stem or filename
    return f'{stem} ({"Segmented" if segmented else "Direct"} Transcription)'


class SegmentedTranscriptionUseCase:
    """Segment, transcribe concurrently, and stitch.

    A fresh ConcurrencyLimiter and ProgressTracker are built for every call,
    so concurrent runs never share permits or progress.
    """

    def __init__(
        self,
        api: TranscriptionApi,
        slicer: AudioSlicer,
        segmentation: SegmentationConfig,
        retry_policy: RetryPolicy = SEGMENT_RETRY_POLICY,
        executor: RetryExecutor | None = None,
    ) -> None:
        self._api = api
        self._slicer = slicer
        self._segmentation = segmentation
        self._retry_policy = retry_policy
        self._executor = executor or RetryExecutor()

    async def _probe(self, source: MediaHandle) -> float:
        try:
            return await asyncio.to_thread(self._slicer.probe_duration, source)
        except ScribeError:
            raise
        except Exception as e:
            raise SegmentationError(f'Failed to read audio duration: {e}') from e

    async def execute(
        self,
        source: MediaHandle,
        credentials: str | None,
        *,
        duration: float | None = None,
        on_progress: ProgressListener | None = None,
        on_segment_progress: Callable[[int, int, int], None] | None = None,
        on_segment_complete: Callable[[int, int, TranscriptionSegment], None] | None = None,
    ) -> Transcript:
        """Run one pipeline pass over *source*.

        Raises SegmentationError, AggregateSegmentError or IncompleteResultError;
        never returns a partial transcript.
        """
        tracker = ProgressTracker(on_progress)
        cfg = self._segmentation
        log.info('Starting segmented transcription for %s (%d bytes)', source.name, source.size)

        # -- Segmenting --
        tracker.emit(Stage.SEGMENTING, 'Analyzing audio and creating segments...', 0)
        total_duration = duration if duration is not None else await self._probe(source)
        segments = segment_duration(
            total_duration,
            cfg.window_duration,
            cfg.overlap_duration,
            on_progress=lambda i, n, msg: tracker.emit(
                Stage.SEGMENTING, msg, 100 * i / n, completed_segments=i, total_segments=n
            ),
        )
        segmented = should_segment(total_duration, cfg.window_duration)
        if not segmented:
            segments = [segments[0].with_payload(source)]
        tracker.complete_stage(Stage.SEGMENTING)
        total = len(segments)
        log.info('Audio duration %.0fs -> %d segments', total_duration, total)

        # -- Transcribing --
        completed: set[int] = set()
        upload_fraction: dict[int, float] = {}

        def _stage_progress() -> float:
            partial = sum(f for i, f in upload_fraction.items() if i not in completed)
            return 100 * (len(completed) + _UPLOAD_SHARE * partial) / total

        def _on_upload(index: int, sent: int, size: int) -> None:
            fraction = sent / size if size else 1.0
            upload_fraction[index] = fraction
            if on_segment_progress is not None:
                on_segment_progress(index, total, round(100 * fraction))
            tracker.emit(
                Stage.TRANSCRIBING,
                f'Uploading segment {index + 1}/{total}...',
                _stage_progress(),
                completed_segments=len(completed),
                total_segments=total,
            )

        def _on_retry(index: int, attempt: int, delay: float, error: BaseException) -> None:
            tracker.emit(
                Stage.TRANSCRIBING,
                f'Segment {index + 1}: attempt {attempt} failed, retrying in {delay:.0f}s...',
                retry_attempt=attempt,
                completed_segments=len(completed),
                total_segments=total,
            )

        def _on_countdown(index: int, seconds: int) -> None:
            tracker.emit(
                Stage.TRANSCRIBING,
                f'Segment {index + 1}: retrying in {seconds}s...',
                retry_countdown_seconds=seconds,
                completed_segments=len(completed),
                total_segments=total,
            )

        def _on_complete(index: int, result: TranscriptionSegment) -> None:
            completed.add(index)
            tracker.emit(
                Stage.TRANSCRIBING,
                f'Completed segment {len(completed)}/{total}',
                _stage_progress(),
                completed_segments=len(completed),
                total_segments=total,
            )
            if on_segment_complete is not None:
                on_segment_complete(index, total, result)

        tracker.emit(
            Stage.TRANSCRIBING,
            f'Transcribing {total} segments in parallel...',
            0,
            completed_segments=0,
            total_segments=total,
        )
        transcriber = SegmentTranscriber(self._api, self._slicer, source, self._retry_policy, self._executor)
        callbacks = SegmentCallbacks(
            on_upload_progress=_on_upload,
            on_retry=_on_retry,
            on_countdown=_on_countdown,
            on_complete=_on_complete,
        )
        limiter = ConcurrencyLimiter(cfg.max_concurrent_segments)
        results = await transcribe_all(transcriber, segments, credentials, limiter, callbacks)
        tracker.complete_stage(Stage.TRANSCRIBING)

        # -- Stitching --
        tracker.emit(Stage.STITCHING, 'Stitching segments and removing overlaps...', 0)
        transcript = stitch(results, title=transcript_title(source.name, segmented))
        tracker.complete_stage(Stage.STITCHING)

        tracker.emit(
            Stage.COMPLETE,
            'Segmented transcription completed!',
            completed_segments=total,
            total_segments=total,
        )
        log.info('Segmented transcription completed: %d words, %d spans', transcript.word_count, len(transcript.spans))
        return transcript
