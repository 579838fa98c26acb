"""Use case: transcribe segments: per-segment unit of work and the all-segments driver."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from meeting_scribe.l1_entities.audio import AudioSegment, MediaHandle
from meeting_scribe.l1_entities.errors import AggregateSegmentError, SegmentTranscriptionError
from meeting_scribe.l1_entities.retry_policy import RetryPolicy
from meeting_scribe.l1_entities.transcript import ProviderTranscription, TextSpan, TranscriptionSegment
from meeting_scribe.l2_use_cases.concurrency_limiter import ConcurrencyLimiter
from meeting_scribe.l2_use_cases.ports.audio_slicer import AudioSlicer
from meeting_scribe.l2_use_cases.ports.transcription_api import TranscriptionApi
from meeting_scribe.l2_use_cases.utils.retry import RetryExecutor

log = logging.getLogger('msc.pipeline')

SEGMENT_RETRY_POLICY = RetryPolicy(max_retries=3, base_delay=2.0, max_delay=30.0)


@dataclass(frozen=True)
class SegmentCallbacks:
    """Optional observers for one segment's lifecycle. All indices are segment indices."""

    on_upload_progress: Callable[[int, int, int], None] | None = None  # (index, bytes_sent, total)
    on_retry: Callable[[int, int, float, BaseException], None] | None = None  # (index, attempt, delay, error)
    on_countdown: Callable[[int, int], None] | None = None  # (index, seconds_left)
    on_complete: Callable[[int, TranscriptionSegment], None] | None = None


def to_transcription_segment(segment: AudioSegment, result: ProviderTranscription) -> TranscriptionSegment:
    """Place provider spans on the full-recording timeline.

    Provider offsets are relative to the transmitted range, which begins
    ``overlap_start`` seconds before the canonical start; the relative
    timestamp is re-based onto the canonical start so that
    ``absolute_start == start_time + relative_timestamp``.
    """
    spans: list[TextSpan] = []
    for raw in result.spans:
        text = raw.text.strip()
        if not text:
            continue
        relative = raw.start_offset - segment.overlap_start
        spans.append(
            TextSpan(
                text=text,
                relative_timestamp=relative,
                duration=max(0.0, raw.end_offset - raw.start_offset),
                absolute_start=segment.start_time + relative,
            )
        )
    return TranscriptionSegment(
        index=segment.index,
        start_time=segment.start_time,
        end_time=segment.end_time,
        spans=spans,
    )


class SegmentTranscriber:
    """Slices one segment out of the source, sends it, retries transient failures."""

    def __init__(
        self,
        api: TranscriptionApi,
        slicer: AudioSlicer,
        source: MediaHandle,
        policy: RetryPolicy = SEGMENT_RETRY_POLICY,
        executor: RetryExecutor | None = None,
    ) -> None:
        self._api = api
        self._slicer = slicer
        self._source = source
        self._policy = policy
        self._executor = executor or RetryExecutor()

    async def _payload_for(self, segment: AudioSegment) -> MediaHandle:
        if segment.payload is not None:
            return segment.payload
        return await asyncio.to_thread(
            self._slicer.slice,
            self._source,
            segment.transmit_start,
            segment.transmit_end,
            segment.index,
        )

    async def transcribe(
        self,
        segment: AudioSegment,
        credentials: str | None,
        callbacks: SegmentCallbacks | None = None,
    ) -> TranscriptionSegment:
        """Transcribe *segment*; any terminal failure becomes SegmentTranscriptionError."""
        cb = callbacks or SegmentCallbacks()
        idx = segment.index
        payload: MediaHandle | None = None
        log.info('Starting transcription of segment %d (%.0fs)', idx, segment.duration)
        try:
            payload = await self._payload_for(segment)

            def _upload_progress(sent: int, total: int) -> None:
                if cb.on_upload_progress is not None:
                    cb.on_upload_progress(idx, sent, total)

            result = await self._executor.execute(
                lambda: self._api.transcribe(payload, credentials, _upload_progress),
                self._policy,
                on_retry=(lambda attempt, delay, err: cb.on_retry(idx, attempt, delay, err)) if cb.on_retry else None,
                on_countdown=(lambda secs: cb.on_countdown(idx, secs)) if cb.on_countdown else None,
            )
        except Exception as e:
            log.error('Failed to transcribe segment %d: %s', idx, e)
            raise SegmentTranscriptionError(idx, e) from e
        finally:
            if payload is not None and payload is not segment.payload and payload.is_temporary:
                self._slicer.release(payload)

        transcribed = to_transcription_segment(segment, result)
        log.info('Completed segment %d: %d spans', idx, len(transcribed.spans))
        if cb.on_complete is not None:
            cb.on_complete(idx, transcribed)
        return transcribed


async def transcribe_all(
    transcriber: SegmentTranscriber,
    segments: list[AudioSegment],
    credentials: str | None,
    limiter: ConcurrencyLimiter,
    callbacks: SegmentCallbacks | None = None,
) -> list[TranscriptionSegment]:
    """Transcribe every segment under *limiter* and wait for all of them.

    Does not fail fast: siblings of a failed segment run to completion, then
    AggregateSegmentError reports every failure. Results are ordered by index.
    """
    outcomes = await asyncio.gather(
        *(limiter.acquire_and_run(lambda s=seg: transcriber.transcribe(s, credentials, callbacks)) for seg in segments),
        return_exceptions=True,
    )

    results: list[TranscriptionSegment] = []
    failures: list[SegmentTranscriptionError] = []
    for segment, outcome in zip(segments, outcomes):
        if isinstance(outcome, SegmentTranscriptionError):
            failures.append(outcome)
        elif isinstance(outcome, Exception):
            failures.append(SegmentTranscriptionError(segment.index, outcome))
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results.append(outcome)

    if failures:
        log.error('%d of %d segments failed: %s', len(failures), len(segments), [f.segment_index for f in failures])
        raise AggregateSegmentError(failures)
    return sorted(results, key=lambda r: r.index)
