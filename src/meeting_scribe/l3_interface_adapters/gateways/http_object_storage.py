"""Gateway: HTTP chunked-upload storage, implements ObjectStorage port."""

from __future__ import annotations

import logging
from collections.abc import Callable

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l3_interface_adapters.gateways.chunked_transport import (
    DEFAULT_TIMEOUT,
    MULTIPART_CHUNK_SIZE,
    HttpChunkedTransport,
    TransportOptions,
)

log = logging.getLogger('msc.transport')


class HttpObjectStorage:
    """Posts the recording in fixed-size chunks to an upload endpoint.

    The endpoint reassembles by ``chunkIndex``/``offset`` and answers the last
    chunk with ``{"url": ...}`` (or ``{"path": ...}``).
    """

    def __init__(
        self,
        upload_url: str,
        transport: HttpChunkedTransport | None = None,
        api_key: str | None = None,
        chunk_size: int = MULTIPART_CHUNK_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._upload_url = upload_url
        self._transport = transport or HttpChunkedTransport()
        self._headers = {'Authorization': f'Bearer {api_key}'} if api_key else {}
        self._chunk_size = chunk_size
        self._timeout = timeout

    async def upload(
        self,
        media: MediaHandle,
        destination: str,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> str:
        resp = await self._transport.send_chunks(
            media,
            self._upload_url,
            TransportOptions(
                chunk_size=self._chunk_size,
                timeout=self._timeout,
                on_progress=on_progress,
                headers=self._headers,
                form_fields=[('path', destination)],
            ),
        )
        try:
            data = resp.json()
        except ValueError:
            log.debug('Storage response for %s is not JSON; using destination as handle', destination)
            return destination
        if isinstance(data, dict):
            return str(data.get('url') or data.get('path') or destination)
        return destination
