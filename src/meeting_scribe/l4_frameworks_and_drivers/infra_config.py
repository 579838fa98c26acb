"""Infrastructure provider configs: lives in L4, not domain."""

from __future__ import annotations

import copy
import os
from typing import Literal

from pydantic import BaseModel, Field

from meeting_scribe.l1_entities.config import AppConfig
from meeting_scribe.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

_MIB = 1024 * 1024

APP_CONFIG_DEFAULTS: dict = {
    'segmentation': {
        'window_duration': 900.0,
        'overlap_duration': 2.0,
        'max_concurrent_segments': 3,
    },
    'transport': {
        'chunk_size': 1 * _MIB,
        'multipart_chunk_size': 5 * _MIB,
        'max_upload_size': 25 * _MIB,
        'timeout': 600.0,
    },
    'transcription': {
        'model': 'whisper-1',
        'language': None,
    },
    'summary': {
        'enabled': True,
        'model': 'gpt-4o-mini',
        'temperature': 0.3,
        'max_tokens': 2000,
    },
    'retry': {
        'transcription': {'max_retries': 3, 'base_delay': 2.0, 'max_delay': 30.0},
        'summary': {'max_retries': 2, 'base_delay': 1.0, 'max_delay': 20.0},
        'upload': {'max_retries': 3, 'base_delay': 1.0, 'max_delay': 10.0},
    },
    'limits': {
        'max_file_size': 500 * _MIB,
        'max_duration_minutes': 180.0,
    },
    'output': {
        'directory': './output',
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)


class TranscriptionProviderConfig(BaseModel):
    base_url: str = 'https://api.openai.com/v1'
    api_key: str | None = None


class OpenAIProviderConfig(BaseModel):
    base_url: str = 'https://api.openai.com/v1'
    api_key: str | None = None


class OllamaProviderConfig(BaseModel):
    host: str = 'http://localhost:11434'


class StorageProviderConfig(BaseModel):
    upload_url: str | None = None  # archiving is skipped when unset
    api_key: str | None = None
    folder: str = 'recordings'


class InfraConfig(BaseModel):
    """Groups all provider-specific settings outside the domain layer."""

    transcription_api: TranscriptionProviderConfig = Field(default_factory=TranscriptionProviderConfig)
    llm_provider: Literal['openai', 'ollama'] = 'openai'
    openai: OpenAIProviderConfig = Field(default_factory=OpenAIProviderConfig)
    ollama: OllamaProviderConfig = Field(default_factory=OllamaProviderConfig)
    storage: StorageProviderConfig = Field(default_factory=StorageProviderConfig)

    def transcription_key(self) -> str | None:
        return self.transcription_api.api_key or os.environ.get('OPENAI_API_KEY')

    def openai_key(self) -> str | None:
        return self.openai.api_key or os.environ.get('OPENAI_API_KEY')
