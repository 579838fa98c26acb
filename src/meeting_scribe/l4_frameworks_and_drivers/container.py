"""Dependency container: composition root for wiring all layers together."""

from __future__ import annotations

from pathlib import Path

import httpx

from meeting_scribe.l1_entities.config import AppConfig
from meeting_scribe.l2_use_cases.ports.audio_slicer import AudioSlicer
from meeting_scribe.l2_use_cases.ports.llm_client import LLMClient
from meeting_scribe.l2_use_cases.ports.object_storage import ObjectStorage
from meeting_scribe.l2_use_cases.ports.persistence import PersistenceGateway
from meeting_scribe.l2_use_cases.ports.transcription_api import TranscriptionApi
from meeting_scribe.l2_use_cases.segmented_transcription_use_case import SegmentedTranscriptionUseCase
from meeting_scribe.l2_use_cases.summary_use_case import GenerateSummaryUseCase
from meeting_scribe.l2_use_cases.upload_recording_use_case import UploadRecordingUseCase
from meeting_scribe.l2_use_cases.utils.retry import RetryExecutor
from meeting_scribe.l3_interface_adapters.gateways.chunked_transport import HttpChunkedTransport
from meeting_scribe.l3_interface_adapters.gateways.ffmpeg_audio_slicer import FfmpegAudioSlicer
from meeting_scribe.l3_interface_adapters.gateways.file_persistence import FilePersistenceGateway
from meeting_scribe.l3_interface_adapters.gateways.http_object_storage import HttpObjectStorage
from meeting_scribe.l3_interface_adapters.gateways.http_transcription_api import HttpTranscriptionApi
from meeting_scribe.l3_interface_adapters.gateways.ollama_llm_client import OllamaLLMClient
from meeting_scribe.l3_interface_adapters.gateways.openai_llm_client import OpenAICompatLLMClient
from meeting_scribe.l4_frameworks_and_drivers.infra_config import InfraConfig


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        output_dir: Path,
        infra: InfraConfig | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.output_dir = output_dir

        _infra = infra or InfraConfig()
        self.infra = _infra
        self.credentials: str | None = _infra.transcription_key()
        self.executor = RetryExecutor()
        self.transport = HttpChunkedTransport(http_transport)

        self.persistence: PersistenceGateway = FilePersistenceGateway(output_dir)
        self.slicer: AudioSlicer = FfmpegAudioSlicer()
        self.transcription_api: TranscriptionApi = HttpTranscriptionApi(
            transport=self.transport,
            base_url=_infra.transcription_api.base_url,
            model=config.transcription.model,
            language=config.transcription.language,
            chunk_size=config.transport.chunk_size,
            max_upload_size=config.transport.max_upload_size,
            timeout=config.transport.timeout,
        )
        self.llm_client: LLMClient = self.build_llm_client(config, _infra)
        self.storage: ObjectStorage | None = None
        if _infra.storage.upload_url:
            self.storage = HttpObjectStorage(
                upload_url=_infra.storage.upload_url,
                transport=self.transport,
                api_key=_infra.storage.api_key,
                chunk_size=config.transport.multipart_chunk_size,
                timeout=config.transport.timeout,
            )

        self.transcription_use_case = SegmentedTranscriptionUseCase(
            api=self.transcription_api,
            slicer=self.slicer,
            segmentation=config.segmentation,
            retry_policy=config.retry.transcription,
            executor=self.executor,
        )
        self.summary_use_case = GenerateSummaryUseCase(self.llm_client, config.retry.summary, self.executor)
        self.upload_use_case = (
            UploadRecordingUseCase(self.storage, config.retry.upload, self.executor) if self.storage else None
        )

    @staticmethod
    def build_llm_client(config: AppConfig, infra: InfraConfig) -> LLMClient:
        sc = config.summary
        if infra.llm_provider == 'ollama':
            return OllamaLLMClient(host=infra.ollama.host, temperature=sc.temperature, max_tokens=sc.max_tokens)
        return OpenAICompatLLMClient(
            api_key=infra.openai_key(),
            base_url=infra.openai.base_url,
            temperature=sc.temperature,
            max_tokens=sc.max_tokens,
        )
