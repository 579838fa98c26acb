"""Gateway: OpenAI-compatible speech-to-text endpoint, implements TranscriptionApi port.

Works with any server exposing ``POST {base_url}/audio/transcriptions`` with
``verbose_json`` output: OpenAI, Groq, a local faster-whisper server, etc.
"""

from __future__ import annotations

import logging

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.errors import TransportError, TransportErrorKind
from meeting_scribe.l1_entities.transcript import ProviderSpan, ProviderTranscription
from meeting_scribe.l2_use_cases.ports.transcription_api import ByteProgressCallback
from meeting_scribe.l3_interface_adapters.gateways.chunked_transport import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    HttpChunkedTransport,
    TransportOptions,
)

log = logging.getLogger('msc.transport')

DEFAULT_BASE_URL = 'https://api.openai.com/v1'
PROVIDER_MAX_UPLOAD = 25 * 1024 * 1024


def parse_verbose_json(data: dict) -> ProviderTranscription:
    """Convert a ``verbose_json`` body into provider spans, relative to the sent audio."""
    duration = float(data.get('duration') or 0.0)
    spans = []
    for seg in data.get('segments') or []:
        text = str(seg.get('text', '')).strip()
        if not text:
            continue
        spans.append(
            ProviderSpan(text=text, start_offset=float(seg.get('start', 0.0)), end_offset=float(seg.get('end', 0.0)))
        )
    if not spans and str(data.get('text', '')).strip():
        # Providers without segment timestamps return one block of text.
        spans.append(ProviderSpan(text=data['text'].strip(), start_offset=0.0, end_offset=duration))
    return ProviderTranscription(duration_seconds=duration, spans=spans)


class HttpTranscriptionApi:
    """Streams one audio payload per call through HttpChunkedTransport."""

    def __init__(
        self,
        transport: HttpChunkedTransport | None = None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = 'whisper-1',
        language: str | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_upload_size: int = PROVIDER_MAX_UPLOAD,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._transport = transport or HttpChunkedTransport()
        self._url = base_url.rstrip('/') + '/audio/transcriptions'
        self._model = model
        self._language = language
        self._chunk_size = chunk_size
        self._max_upload_size = max_upload_size
        self._timeout = timeout

    async def transcribe(
        self,
        media: MediaHandle,
        credentials: str | None,
        on_progress: ByteProgressCallback | None = None,
    ) -> ProviderTranscription:
        fields = [
            ('model', self._model),
            ('response_format', 'verbose_json'),
            ('timestamp_granularities[]', 'segment'),
        ]
        if self._language:
            fields.append(('language', self._language))
        headers = {'Authorization': f'Bearer {credentials}'} if credentials else {}

        resp = await self._transport.send(
            media,
            self._url,
            TransportOptions(
                chunk_size=self._chunk_size,
                max_size=self._max_upload_size,
                timeout=self._timeout,
                on_progress=on_progress,
                headers=headers,
                form_fields=fields,
            ),
        )
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(
                f'Invalid transcription response: {e}', TransportErrorKind.HTTP, status_code=resp.status_code
            ) from e
        if not isinstance(data, dict):
            raise TransportError(
                'Invalid transcription response: expected a JSON object',
                TransportErrorKind.HTTP,
                status_code=resp.status_code,
            )
        result = parse_verbose_json(data)
        log.debug('Transcribed %s: %d spans, %.1fs', media.name, len(result.spans), result.duration_seconds)
        return result
