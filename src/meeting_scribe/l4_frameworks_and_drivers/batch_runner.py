"""Batch runner: headless segmented transcription and a single summary."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from meeting_scribe.l1_entities.config import AppConfig
from meeting_scribe.l1_entities.errors import ScribeError, SegmentationError
from meeting_scribe.l1_entities.progress import ProgressState, Stage
from meeting_scribe.l1_entities.summary import MeetingSummary
from meeting_scribe.l1_entities.transcript import Transcript, format_wall_time
from meeting_scribe.l2_use_cases.utils.file_validation import validate_duration
from meeting_scribe.l2_use_cases.utils.prompt_builder import render_summary_markdown
from meeting_scribe.l3_interface_adapters.gateways.local_media import open_media
from meeting_scribe.l4_frameworks_and_drivers.container import DependencyContainer
from meeting_scribe.l4_frameworks_and_drivers.infra_config import InfraConfig

log = logging.getLogger('msc.pipeline')


def _err(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def _fail(exc: Exception) -> SystemExit:
    if isinstance(exc, ScribeError):
        _err(f'Error [{exc.code}]: {exc.message}')
        tip = getattr(exc, 'remediation_tip', '')
        if tip:
            _err(f'  Tip: {tip}')
    else:
        _err(f'Error: {exc}')
    return SystemExit(1)


class ProgressPrinter:
    """Renders progress snapshots to stderr and records each one through persistence."""

    def __init__(self, persistence) -> None:
        self._persistence = persistence
        self._last_line = ''

    def __call__(self, state: ProgressState) -> None:
        self._persistence.append_progress(state)
        if state.retry_countdown_seconds is not None and state.retry_countdown_seconds > 0:
            return
        line = f'[{state.percentage:3d}%] {state.stage.value}: {state.message}'
        if line != self._last_line:
            self._last_line = line
            _err(line)


async def _run(
    container: DependencyContainer,
    media,
    duration: float,
    summarize: bool,
) -> tuple[Transcript, MeetingSummary | None]:
    config = container.config
    if container.upload_use_case is not None:
        _err(f'Archiving recording to {container.infra.storage.upload_url}...')
        handle = await container.upload_use_case.execute(media, container.infra.storage.folder)
        _err(f'  Archived as {handle}')

    printer = ProgressPrinter(container.persistence)

    def _on_segment_complete(index, total, result) -> None:
        _err(f'  Segment {index + 1}/{total}: {len(result.spans)} spans')

    transcript = await container.transcription_use_case.execute(
        media,
        container.credentials,
        duration=duration,
        on_progress=printer,
        on_segment_complete=_on_segment_complete,
    )
    container.persistence.save_transcript(transcript)

    if not summarize:
        return transcript, None

    _err(f'Generating summary with {config.summary.model}...')
    summary = await container.summary_use_case.execute(
        transcript,
        config.summary.model,
        on_retry=lambda attempt, delay, e: _err(f'  Summary attempt {attempt} failed ({e}); retrying in {delay:.0f}s'),
    )
    return transcript, summary


def run_batch(
    audio_path: Path,
    config: AppConfig,
    out_dir: Path,
    infra: InfraConfig,
    *,
    summarize: bool = True,
    container: DependencyContainer | None = None,
) -> None:
    """Validate *audio_path*, transcribe it in segments, and summarize. Blocks until done."""

    # -- Validate input --
    _err(f'Loading audio: {audio_path}')
    try:
        media = open_media(audio_path, max_size=config.limits.max_file_size)
    except (FileNotFoundError, ScribeError) as exc:
        raise _fail(exc) from exc

    container = container or DependencyContainer(config, out_dir, infra=infra)
    try:
        duration = container.slicer.probe_duration(media)
    except (FileNotFoundError, RuntimeError) as exc:
        raise _fail(SegmentationError(f'Failed to read audio duration: {exc}')) from exc
    try:
        validate_duration(duration, config.limits.max_duration_minutes)
    except ScribeError as exc:
        raise _fail(exc) from exc
    _err(f'Duration: {format_wall_time(duration)}  ({media.size:,} bytes, {media.mime_type})')

    # -- Transcribe + summarize --
    try:
        transcript, summary = asyncio.run(_run(container, media, duration, summarize))
    except ScribeError as exc:
        log.error('Run failed: %s', exc.to_dict())
        raise _fail(exc) from exc

    transcript_path = out_dir / 'transcript.txt'
    _err(
        f'\nTranscription complete: {transcript.word_count} words, '
        f'{len(transcript.spans)} spans, {transcript.duration}.'
    )
    if summary is None:
        _err(f'\nSaved:\n  Transcript: {transcript_path}\n')
        print('\n'.join(transcript.lines()))
        return

    markdown = render_summary_markdown(summary)
    summary_path = container.persistence.save_summary(summary, markdown)
    _err(f'\nSaved:\n  Transcript: {transcript_path}\n  Summary:    {summary_path}\n')
    print(markdown)
