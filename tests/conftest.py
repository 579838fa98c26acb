"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.chat_message import ChatMessage
from meeting_scribe.l1_entities.config import AppConfig
from meeting_scribe.l1_entities.progress import ProgressState
from meeting_scribe.l1_entities.summary import MeetingSummary
from meeting_scribe.l1_entities.transcript import ProviderSpan, ProviderTranscription, Transcript
from meeting_scribe.l2_use_cases.ports.llm_client import ChatResponse
from meeting_scribe.l2_use_cases.utils.retry import RetryExecutor
from meeting_scribe.l4_frameworks_and_drivers.infra_config import build_app_config

# --- Protocol-conforming Fakes ---


class FakeTranscriptionApi:
    """Fake transcription API for L2 use case tests.

    ``outcomes`` maps a payload file name to a list of results consumed one per
    call; an item that is an exception is raised instead of returned. Names
    without scripted outcomes get one span at offset 0.
    """

    def __init__(self, outcomes: dict[str, list] | None = None, delay: float = 0.0) -> None:
        self._outcomes = {name: list(items) for name, items in (outcomes or {}).items()}
        self._delay = delay
        self.calls: list[tuple[str, str | None]] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def transcribe(self, media: MediaHandle, credentials, on_progress=None) -> ProviderTranscription:
        self.calls.append((media.name, credentials))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if on_progress is not None:
                on_progress(media.size // 2, media.size)
            await asyncio.sleep(self._delay)
            if on_progress is not None:
                on_progress(media.size, media.size)
            scripted = self._outcomes.get(media.name)
            if scripted:
                outcome = scripted.pop(0)
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
            return ProviderTranscription(
                duration_seconds=1.0,
                spans=[ProviderSpan(text=f'text of {media.name}', start_offset=0.0, end_offset=1.0)],
            )
        finally:
            self.in_flight -= 1

    def calls_for(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


class FakeAudioSlicer:
    """Fake slicer: reports a fixed duration and hands out named temporary handles."""

    def __init__(self, duration: float = 60.0, fail_probe: Exception | None = None) -> None:
        self._duration = duration
        self._fail_probe = fail_probe
        self.slices: list[tuple[int, float, float]] = []
        self.released: list[str] = []

    def probe_duration(self, media: MediaHandle) -> float:
        if self._fail_probe is not None:
            raise self._fail_probe
        return self._duration

    def slice(self, media: MediaHandle, start: float, end: float, index: int) -> MediaHandle:
        self.slices.append((index, start, end))
        return MediaHandle(
            path=Path(f'/fake/segment_{index:03d}.mp3'),
            size=1000,
            mime_type=media.mime_type,
            is_temporary=True,
        )

    def release(self, handle: MediaHandle) -> None:
        self.released.append(handle.name)


class FakeLLMClient:
    """Fake LLM client for L2 use case tests."""

    def __init__(self, response: str = 'Fake LLM response', prompt_tokens: int = 100, errors: list | None = None):
        self._response = response
        self._prompt_tokens = prompt_tokens
        self._errors = list(errors or [])
        self.chat_calls: list[tuple[str, list[ChatMessage]]] = []
        self._connectivity = (True, '')

    async def chat(self, model: str, messages: list[ChatMessage]) -> ChatResponse:
        self.chat_calls.append((model, list(messages)))
        if self._errors:
            raise self._errors.pop(0)
        return ChatResponse(content=self._response, prompt_tokens=self._prompt_tokens)

    def check_connectivity(self) -> tuple[bool, str]:
        return self._connectivity

    def set_response(self, response: str, prompt_tokens: int = 100) -> None:
        self._response = response
        self._prompt_tokens = prompt_tokens

    def set_connectivity(self, ok: bool, msg: str = '') -> None:
        self._connectivity = (ok, msg)


class FakePersistence:
    """Fake persistence gateway for L2/L4 tests."""

    def __init__(self, output_dir: Path | None = None):
        self._output_dir = output_dir or Path('/fake/output')
        self.transcripts: list[Transcript] = []
        self.summaries: list[tuple[MeetingSummary, str]] = []
        self.progress: list[ProgressState] = []

    def save_transcript(self, transcript: Transcript) -> Path:
        self.transcripts.append(transcript)
        return self._output_dir / 'transcript.txt'

    def save_summary(self, summary: MeetingSummary, markdown: str) -> Path:
        self.summaries.append((summary, markdown))
        return self._output_dir / 'summary.md'

    def append_progress(self, state: ProgressState) -> Path:
        self.progress.append(state)
        return self._output_dir / 'progress.jsonl'


class FakeObjectStorage:
    """Fake storage: fails with the scripted errors first, then returns a handle."""

    def __init__(self, errors: list | None = None) -> None:
        self._errors = list(errors or [])
        self.uploads: list[tuple[str, str]] = []

    async def upload(self, media: MediaHandle, destination: str, on_progress=None) -> str:
        self.uploads.append((media.name, destination))
        if self._errors:
            raise self._errors.pop(0)
        if on_progress is not None:
            on_progress(media.size, media.size)
        return f'https://storage.example/{destination}'


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays and yields once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.calls)


# --- Standard Fixtures ---


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    d = tmp_path / 'output'
    d.mkdir()
    return d


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({})


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def instant_executor(recording_sleep: RecordingSleep) -> RetryExecutor:
    """RetryExecutor with no wall-clock sleeping and zero jitter."""
    return RetryExecutor(sleep=recording_sleep, rand=lambda: 0.0)


@pytest.fixture
def source_media(tmp_path: Path) -> MediaHandle:
    path = tmp_path / 'meeting.mp3'
    path.write_bytes(b'ID3' + b'\x00' * 997)
    return MediaHandle(path=path, size=1000, mime_type='audio/mpeg')


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def fake_persistence() -> FakePersistence:
    return FakePersistence()


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
segmentation:
  window_duration: 600
  overlap_duration: 3
  max_concurrent_segments: 2
summary:
  model: "llama3:8b"
  enabled: true
retry:
  transcription:
    max_retries: 5
    base_delay: 0.5
    max_delay: 8
output:
  directory: "./test_output"
llm_provider: ollama
ollama:
  host: "http://ollama.local:11434"
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p
