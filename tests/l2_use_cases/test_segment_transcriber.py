"""Tests for SegmentTranscriber and transcribe_all: fakes only, no patching."""

from __future__ import annotations

from pathlib import Path

import pytest

from meeting_scribe.l1_entities.audio import AudioSegment, MediaHandle
from meeting_scribe.l1_entities.errors import (
    AggregateSegmentError,
    RetryExhaustedError,
    SegmentTranscriptionError,
    http_error,
)
from meeting_scribe.l1_entities.transcript import ProviderSpan, ProviderTranscription
from meeting_scribe.l2_use_cases.concurrency_limiter import ConcurrencyLimiter
from meeting_scribe.l2_use_cases.segment_transcriber import (
    SEGMENT_RETRY_POLICY,
    SegmentCallbacks,
    SegmentTranscriber,
    to_transcription_segment,
    transcribe_all,
)
from meeting_scribe.l2_use_cases.segmenter import segment_duration
from tests.conftest import FakeAudioSlicer, FakeTranscriptionApi


def _provider(*spans: tuple[str, float, float]) -> ProviderTranscription:
    return ProviderTranscription(
        duration_seconds=max((e for _, _, e in spans), default=0.0),
        spans=[ProviderSpan(text=t, start_offset=s, end_offset=e) for t, s, e in spans],
    )


class TestToTranscriptionSegment:
    def test_rebases_onto_canonical_start(self):
        segment = AudioSegment(index=1, start_time=900, end_time=1800, duration=904, overlap_start=2, overlap_end=2)
        result = to_transcription_segment(segment, _provider(('overlap', 0.5, 1.5), ('fresh', 12.0, 14.0)))
        assert [(s.text, s.relative_timestamp, s.absolute_start) for s in result.spans] == [
            ('overlap', -1.5, 898.5),
            ('fresh', 10.0, 910.0),
        ]
        assert result.spans[1].duration == 2.0
        assert (result.index, result.start_time, result.end_time) == (1, 900, 1800)

    def test_absolute_equals_start_plus_relative(self):
        segment = AudioSegment(index=2, start_time=1800, end_time=2400, duration=602, overlap_start=2)
        result = to_transcription_segment(segment, _provider(('a', 3.0, 4.0), ('b', 100.0, 104.0)))
        for span in result.spans:
            assert span.absolute_start == segment.start_time + span.relative_timestamp

    def test_skips_blank_spans(self):
        segment = AudioSegment(index=0, start_time=0, end_time=10, duration=10)
        result = to_transcription_segment(segment, _provider(('  ', 0.0, 1.0), (' hi ', 2.0, 3.0)))
        assert [s.text for s in result.spans] == ['hi']


class TestSegmentTranscriber:
    @pytest.mark.asyncio
    async def test_slices_transcribes_and_releases(self, source_media, instant_executor):
        api = FakeTranscriptionApi()
        slicer = FakeAudioSlicer()
        transcriber = SegmentTranscriber(api, slicer, source_media, SEGMENT_RETRY_POLICY, instant_executor)
        segment = AudioSegment(index=1, start_time=900, end_time=1800, duration=904, overlap_start=2, overlap_end=2)

        result = await transcriber.transcribe(segment, 'key-123')

        assert slicer.slices == [(1, 898, 1802)]
        assert api.calls == [('segment_001.mp3', 'key-123')]
        assert slicer.released == ['segment_001.mp3']
        assert result.spans[0].text == 'text of segment_001.mp3'

    @pytest.mark.asyncio
    async def test_existing_payload_sent_as_is(self, source_media, instant_executor):
        api = FakeTranscriptionApi()
        slicer = FakeAudioSlicer()
        transcriber = SegmentTranscriber(api, slicer, source_media, executor=instant_executor)
        segment = AudioSegment(index=0, start_time=0, end_time=60, duration=60, payload=source_media)

        await transcriber.transcribe(segment, None)

        assert slicer.slices == []
        assert slicer.released == []
        assert api.calls == [('meeting.mp3', None)]

    @pytest.mark.asyncio
    async def test_rate_limit_honours_retry_after(self, source_media, instant_executor, recording_sleep):
        api = FakeTranscriptionApi({'segment_000.mp3': [http_error(429, retry_after=5.0)]})
        transcriber = SegmentTranscriber(api, FakeAudioSlicer(), source_media, executor=instant_executor)
        retries: list[tuple[int, int, float]] = []
        ticks: list[int] = []
        callbacks = SegmentCallbacks(
            on_retry=lambda idx, attempt, delay, err: retries.append((idx, attempt, delay)),
            on_countdown=lambda idx, secs: ticks.append(secs),
        )
        segment = AudioSegment(index=0, start_time=0, end_time=900, duration=902, overlap_end=2)

        result = await transcriber.transcribe(segment, 'k', callbacks)

        assert retries == [(0, 1, 5.0)]
        assert ticks == [5, 4, 3, 2, 1, 0]
        assert recording_sleep.total == pytest.approx(5.0)
        assert api.calls_for('segment_000.mp3') == 2
        assert result.spans

    @pytest.mark.asyncio
    async def test_exhaustion_becomes_segment_error(self, source_media, instant_executor):
        api = FakeTranscriptionApi({'segment_002.mp3': [http_error(500)] * 4})
        slicer = FakeAudioSlicer()
        transcriber = SegmentTranscriber(api, slicer, source_media, executor=instant_executor)
        segment = AudioSegment(index=2, start_time=1800, end_time=2400, duration=602, overlap_start=2)

        with pytest.raises(SegmentTranscriptionError) as exc_info:
            await transcriber.transcribe(segment, 'k')

        assert exc_info.value.segment_index == 2
        assert isinstance(exc_info.value.cause, RetryExhaustedError)
        assert api.calls_for('segment_002.mp3') == 4
        assert slicer.released == ['segment_002.mp3']

    @pytest.mark.asyncio
    async def test_upload_progress_forwarded(self, source_media, instant_executor):
        api = FakeTranscriptionApi()
        transcriber = SegmentTranscriber(api, FakeAudioSlicer(), source_media, executor=instant_executor)
        progress: list[tuple[int, int, int]] = []
        completed: list[int] = []
        callbacks = SegmentCallbacks(
            on_upload_progress=lambda idx, sent, total: progress.append((idx, sent, total)),
            on_complete=lambda idx, result: completed.append(idx),
        )
        segment = AudioSegment(index=3, start_time=2700, end_time=3600, duration=904)

        await transcriber.transcribe(segment, None, callbacks)

        assert progress == [(3, 500, 1000), (3, 1000, 1000)]
        assert completed == [3]


class TestTranscribeAll:
    @pytest.mark.asyncio
    async def test_results_ordered_and_concurrency_bounded(self, source_media, instant_executor):
        api = FakeTranscriptionApi(delay=0.01)
        transcriber = SegmentTranscriber(api, FakeAudioSlicer(), source_media, executor=instant_executor)
        segments = segment_duration(900 * 7, 900, 2)
        limiter = ConcurrencyLimiter(3)

        results = await transcribe_all(transcriber, segments, 'k', limiter)

        assert [r.index for r in results] == list(range(7))
        assert api.peak_in_flight == 3
        assert limiter.peak_active == 3

    @pytest.mark.asyncio
    async def test_one_failure_waits_for_all_and_aggregates(self, source_media, instant_executor):
        api = FakeTranscriptionApi({'segment_002.mp3': [http_error(500)] * 4})
        slicer = FakeAudioSlicer()
        transcriber = SegmentTranscriber(api, slicer, source_media, executor=instant_executor)
        segments = segment_duration(2400, 900, 2)

        with pytest.raises(AggregateSegmentError) as exc_info:
            await transcribe_all(transcriber, segments, 'k', ConcurrencyLimiter(3))

        assert exc_info.value.failed_indices == [2]
        assert api.calls_for('segment_000.mp3') == 1
        assert api.calls_for('segment_001.mp3') == 1
        assert api.calls_for('segment_002.mp3') == 4
        assert sorted(slicer.released) == ['segment_000.mp3', 'segment_001.mp3', 'segment_002.mp3']

    @pytest.mark.asyncio
    async def test_multiple_failures_all_reported(self, source_media, instant_executor):
        api = FakeTranscriptionApi(
            {
                'segment_000.mp3': [http_error(400)],
                'segment_002.mp3': [http_error(401)],
            }
        )
        transcriber = SegmentTranscriber(api, FakeAudioSlicer(), source_media, executor=instant_executor)

        with pytest.raises(AggregateSegmentError) as exc_info:
            await transcribe_all(transcriber, segment_duration(2400, 900, 2), 'k', ConcurrencyLimiter(1))

        assert exc_info.value.failed_indices == [0, 2]
        assert api.calls_for('segment_000.mp3') == 1

    @pytest.mark.asyncio
    async def test_slicer_failure_reported_as_segment_failure(self, tmp_path: Path, instant_executor):
        class BrokenSlicer(FakeAudioSlicer):
            def slice(self, media, start, end, index):
                if index == 1:
                    raise RuntimeError('ffmpeg exited with code 1')
                return super().slice(media, start, end, index)

        source = MediaHandle(path=tmp_path / 'x.mp3', size=10)
        transcriber = SegmentTranscriber(FakeTranscriptionApi(), BrokenSlicer(), source, executor=instant_executor)

        with pytest.raises(AggregateSegmentError) as exc_info:
            await transcribe_all(transcriber, segment_duration(1800, 900, 2), None, ConcurrencyLimiter(2))

        assert exc_info.value.failed_indices == [1]
        assert 'ffmpeg' in str(exc_info.value.failures[0].cause)
