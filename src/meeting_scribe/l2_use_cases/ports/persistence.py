"""Port: persistence gateway for saving session artifacts."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from meeting_scribe.l1_entities.progress import ProgressState
from meeting_scribe.l1_entities.summary import MeetingSummary
from meeting_scribe.l1_entities.transcript import Transcript


class PersistenceGateway(Protocol):
    """Abstract persistence for transcripts, summaries, and progress."""

    def save_transcript(self, transcript: Transcript) -> Path:
        """Save the stitched transcript. Returns the plain-text path."""
        ...

    def save_summary(self, summary: MeetingSummary, markdown: str) -> Path:
        """Save the summary. Returns the markdown path."""
        ...

    def append_progress(self, state: ProgressState) -> Path:
        """Append one progress snapshot to the run's progress log."""
        ...
