"""Gateway: file-based persistence, implements PersistenceGateway port."""

from __future__ import annotations

import logging
from pathlib import Path

from meeting_scribe.l1_entities.progress import ProgressState
from meeting_scribe.l1_entities.summary import MeetingSummary
from meeting_scribe.l1_entities.transcript import Transcript

log = logging.getLogger('msc.persist')


class FilePersistenceGateway:
    """Persists transcripts, summaries, and the progress stream to a session directory."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir
        self._output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def save_transcript(self, transcript: Transcript) -> Path:
        path = self._output_dir / 'transcript.txt'
        header = [
            f'# {transcript.title}' if transcript.title else '# Transcript',
            f'Duration: {transcript.duration}  Words: {transcript.word_count}  Segments: {transcript.segment_count}',
            '',
        ]
        path.write_text('\n'.join(header + transcript.lines()) + '\n', encoding='utf-8')
        json_path = self._output_dir / 'transcript.json'
        json_path.write_text(transcript.model_dump_json(indent=2), encoding='utf-8')
        log.debug('Wrote %d spans to %s and %s', len(transcript.spans), path.name, json_path.name)
        return path

    def save_summary(self, summary: MeetingSummary, markdown: str) -> Path:
        json_path = self._output_dir / 'summary.json'
        json_path.write_text(summary.model_dump_json(by_alias=True, indent=2), encoding='utf-8')
        path = self._output_dir / 'summary.md'
        path.write_text(markdown.rstrip('\n') + '\n', encoding='utf-8')
        return path

    def append_progress(self, state: ProgressState) -> Path:
        path = self._output_dir / 'progress.jsonl'
        with path.open('a', encoding='utf-8') as f:
            f.write(state.model_dump_json() + '\n')
        return path
