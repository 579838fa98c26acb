"""Merge per-segment transcripts into one timeline."""

from __future__ import annotations

import logging

from meeting_scribe.l1_entities.errors import IncompleteResultError
from meeting_scribe.l1_entities.transcript import TextSpan, Transcript, TranscriptionSegment, count_words

log = logging.getLogger('msc.pipeline')

OVERLAP_BUFFER = 1.0  # seconds before the previous segment's end that still counts as overlap
DUPLICATE_WINDOW = 3.0  # seconds
DUPLICATE_SIMILARITY = 0.8


def text_similarity(a: str, b: str) -> float:
    """Share of words in common, relative to the longer text."""
    words_a = a.lower().split()
    words_b = b.lower().split()
    total = max(len(words_a), len(words_b))
    if total == 0:
        return 0.0
    lookup = set(words_b)
    common = [w for w in words_a if w in lookup]
    return len(common) / total


def trim_overlap(segments: list[TranscriptionSegment]) -> list[TextSpan]:
    """Concatenate spans, dropping head-overlap content already covered by the previous segment."""
    spans: list[TextSpan] = []
    for pos, segment in enumerate(segments):
        if pos == 0:
            spans.extend(segment.spans)
            continue
        threshold = segments[pos - 1].end_time - OVERLAP_BUFFER
        for span in segment.spans:
            if span.absolute_start < threshold:
                log.debug('Skipping overlapping span at %.2fs in segment %d', span.absolute_start, segment.index)
                continue
            spans.append(span)
    return spans


def remove_duplicate_spans(spans: list[TextSpan]) -> list[TextSpan]:
    """Drop a span when it is close in time and near-identical in text to the span before it."""
    kept: list[TextSpan] = []
    for i, span in enumerate(spans):
        if i > 0:
            prev = spans[i - 1]
            close = abs(span.absolute_start - prev.absolute_start) < DUPLICATE_WINDOW
            if close and text_similarity(span.text, prev.text) > DUPLICATE_SIMILARITY:
                log.debug('Removing duplicate span: %r', span.text[:50])
                continue
        kept.append(span)
    return kept


def stitch(segments: list[TranscriptionSegment], title: str = '') -> Transcript:
    """Order, trim, deduplicate, and total the per-segment results.

    Raises IncompleteResultError unless indices are exactly ``0..n-1``.
    """
    ordered = sorted(segments, key=lambda s: s.index)
    indices = [s.index for s in ordered]
    if indices != list(range(len(ordered))):
        missing = sorted(set(range(max(indices, default=-1) + 1)) - set(indices))
        raise IncompleteResultError(f'Segment results are not contiguous: got {indices}, missing {missing}')

    trimmed = trim_overlap(ordered)
    trimmed.sort(key=lambda s: s.absolute_start)  # stable: ties keep segment order
    spans = remove_duplicate_spans(trimmed)

    total_spans = sum(len(s.spans) for s in ordered)
    log.info('Stitched %d segments: %d -> %d -> %d spans', len(ordered), total_spans, len(trimmed), len(spans))

    return Transcript(
        title=title,
        spans=spans,
        word_count=sum(count_words(s.text) for s in spans),
        duration_seconds=ordered[-1].end_time if ordered else 0.0,
        segment_count=len(ordered),
    )
