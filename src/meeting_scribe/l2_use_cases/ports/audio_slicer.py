"""Port: audio probing and cutting."""

from __future__ import annotations

from typing import Protocol

from meeting_scribe.l1_entities.audio import MediaHandle


class AudioSlicer(Protocol):
    """Decodes just enough to measure a recording and cut time ranges out of it."""

    def probe_duration(self, media: MediaHandle) -> float:
        """Return the recording's duration in seconds."""
        ...

    def slice(self, media: MediaHandle, start: float, end: float, index: int) -> MediaHandle:
        """Cut ``[start, end)`` seconds into a new (usually temporary) handle."""
        ...

    def release(self, handle: MediaHandle) -> None:
        """Dispose of a handle returned by slice()."""
        ...
