"""Use case: archive the source recording to object storage before transcription."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.retry_policy import RetryPolicy
from meeting_scribe.l2_use_cases.ports.object_storage import ObjectStorage
from meeting_scribe.l2_use_cases.utils.retry import CountdownCallback, RetryCallback, RetryExecutor

log = logging.getLogger('msc.transport')

UPLOAD_RETRY_POLICY = RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0)


def storage_key(media: MediaHandle, folder: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime('%Y-%m-%dT%H-%M-%S')
    return f'{folder}/{stamp}_{media.name}'


class UploadRecordingUseCase:
    def __init__(
        self,
        storage: ObjectStorage,
        policy: RetryPolicy = UPLOAD_RETRY_POLICY,
        executor: RetryExecutor | None = None,
    ) -> None:
        self._storage = storage
        self._policy = policy
        self._executor = executor or RetryExecutor()

    async def execute(
        self,
        media: MediaHandle,
        folder: str = 'recordings',
        *,
        on_progress: Callable[[int, int], None] | None = None,
        on_retry: RetryCallback | None = None,
        on_countdown: CountdownCallback | None = None,
    ) -> str:
        """Upload *media*, restarting from scratch on a retryable failure. Returns the storage handle."""
        destination = storage_key(media, folder)
        log.info('Archiving %s (%d bytes) to %s', media.name, media.size, destination)
        handle = await self._executor.execute(
            lambda: self._storage.upload(media, destination, on_progress),
            self._policy,
            on_retry=on_retry,
            on_countdown=on_countdown,
        )
        log.info('Archived %s as %s', media.name, handle)
        return handle
