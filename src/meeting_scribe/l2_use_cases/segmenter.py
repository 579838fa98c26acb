"""Divide a recording's duration into ordered, overlapping time windows."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

from meeting_scribe.l1_entities.audio import AudioSegment
from meeting_scribe.l1_entities.errors import SegmentationError

log = logging.getLogger('msc.pipeline')

DEFAULT_WINDOW_DURATION = 900.0  # 15 minutes
DEFAULT_OVERLAP_DURATION = 2.0

SegmentProgressCallback = Callable[[int, int, str], None]


def should_segment(total_duration: float, window_duration: float = DEFAULT_WINDOW_DURATION) -> bool:
    """True when the recording needs more than one window."""
    return total_duration > window_duration


def segment_duration(
    total_duration: float,
    window_duration: float = DEFAULT_WINDOW_DURATION,
    overlap_duration: float = DEFAULT_OVERLAP_DURATION,
    on_progress: SegmentProgressCallback | None = None,
) -> list[AudioSegment]:
    """Return ``ceil(total / window)`` segments with canonical, contiguous bounds.

    Each non-initial window is extended by *overlap_duration* at the head and
    each non-terminal window at the tail; the extension is recorded in
    ``overlap_start``/``overlap_end`` and clamped to ``[0, total]``.
    """
    if not math.isfinite(total_duration) or total_duration <= 0:
        raise SegmentationError(f'Cannot segment audio with duration {total_duration!r}')
    if window_duration <= 0:
        raise SegmentationError(f'Window duration must be positive, got {window_duration!r}')
    if overlap_duration < 0:
        raise SegmentationError(f'Overlap duration must be non-negative, got {overlap_duration!r}')

    if not should_segment(total_duration, window_duration):
        if on_progress is not None:
            on_progress(1, 1, 'Creating segment 1/1...')
        return [
            AudioSegment(
                index=0,
                start_time=0.0,
                end_time=total_duration,
                duration=total_duration,
            )
        ]

    count = math.ceil(total_duration / window_duration)
    log.info('Creating %d segments of %.0fs each with %.1fs overlap', count, window_duration, overlap_duration)
    segments: list[AudioSegment] = []
    for i in range(count):
        start = i * window_duration
        end = min(total_duration, (i + 1) * window_duration)
        transmit_start = max(0.0, start - (overlap_duration if i > 0 else 0.0))
        transmit_end = min(total_duration, end + (overlap_duration if i < count - 1 else 0.0))
        segments.append(
            AudioSegment(
                index=i,
                start_time=start,
                end_time=end,
                duration=transmit_end - transmit_start,
                overlap_start=start - transmit_start,
                overlap_end=transmit_end - end,
            )
        )
        log.debug('Segment %d: %.1fs - %.1fs (transmit %.1fs - %.1fs)', i, start, end, transmit_start, transmit_end)
        if on_progress is not None:
            on_progress(i + 1, count, f'Creating segment {i + 1}/{count}...')
    return segments
