"""Port: external speech-to-text API."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.transcript import ProviderTranscription

ByteProgressCallback = Callable[[int, int], None]


class TranscriptionApi(Protocol):
    """Remote transcription service. Zero framework types leak through.

    Failures are raised as TransportError (with ``status_code`` and an
    optional ``retry_after``) or AuthError.
    """

    async def transcribe(
        self,
        media: MediaHandle,
        credentials: str | None,
        on_progress: ByteProgressCallback | None = None,
    ) -> ProviderTranscription:
        """Send *media* and return spans relative to the start of the sent audio."""
        ...
