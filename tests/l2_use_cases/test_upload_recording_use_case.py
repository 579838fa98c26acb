"""Tests for UploadRecordingUseCase."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.errors import AuthError, RetryExhaustedError, http_error, network_error
from meeting_scribe.l1_entities.retry_policy import RetryPolicy
from meeting_scribe.l2_use_cases.upload_recording_use_case import UploadRecordingUseCase, storage_key
from tests.conftest import FakeObjectStorage


def test_storage_key_is_timestamped():
    media = MediaHandle(path=Path('/rec/standup.mp3'), size=1)
    now = datetime(2026, 3, 2, 9, 30, 15, tzinfo=timezone.utc)
    assert storage_key(media, 'recordings', now) == 'recordings/2026-03-02T09-30-15_standup.mp3'


class TestUploadRecording:
    @pytest.mark.asyncio
    async def test_returns_handle(self, source_media, instant_executor):
        storage = FakeObjectStorage()
        progress: list[tuple[int, int]] = []
        handle = await UploadRecordingUseCase(storage, executor=instant_executor).execute(
            source_media, 'archive', on_progress=lambda sent, total: progress.append((sent, total))
        )
        assert handle.startswith('https://storage.example/archive/')
        assert handle.endswith('_meeting.mp3')
        assert progress == [(1000, 1000)]

    @pytest.mark.asyncio
    async def test_whole_upload_retried(self, source_media, instant_executor):
        storage = FakeObjectStorage(errors=[network_error('reset'), http_error(502)])
        await UploadRecordingUseCase(storage, RetryPolicy(max_retries=3), instant_executor).execute(source_media)
        assert len(storage.uploads) == 3

    @pytest.mark.asyncio
    async def test_exhausted(self, source_media, instant_executor):
        storage = FakeObjectStorage(errors=[http_error(503)] * 2)
        with pytest.raises(RetryExhaustedError):
            await UploadRecordingUseCase(storage, RetryPolicy(max_retries=1), instant_executor).execute(source_media)

    @pytest.mark.asyncio
    async def test_auth_failure_not_retried(self, source_media, instant_executor):
        storage = FakeObjectStorage(errors=[http_error(403)])
        with pytest.raises(AuthError):
            await UploadRecordingUseCase(storage, executor=instant_executor).execute(source_media)
        assert len(storage.uploads) == 1
