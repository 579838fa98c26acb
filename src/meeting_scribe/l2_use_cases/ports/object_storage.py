"""Port: object storage for archiving source recordings."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from meeting_scribe.l1_entities.audio import MediaHandle


class ObjectStorage(Protocol):
    """Accepts streamed bytes and returns an opaque handle for later retrieval."""

    async def upload(
        self,
        media: MediaHandle,
        destination: str,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> str:
        """Upload *media* under *destination*; return the storage handle."""
        ...
