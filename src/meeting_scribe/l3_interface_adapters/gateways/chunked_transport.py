"""Gateway: chunked HTTP transport built on httpx.

Payloads are streamed from disk one chunk at a time, so resident memory stays
bounded by the chunk size whatever the file size. Library exceptions are
translated into TransportError at this boundary.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field

import httpx

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l1_entities.errors import FileTooLargeError, http_error, network_error, timeout_error
from meeting_scribe.l2_use_cases.utils.retry import parse_retry_after

log = logging.getLogger('msc.transport')

DEFAULT_CHUNK_SIZE = 1024 * 1024
MULTIPART_CHUNK_SIZE = 5 * 1024 * 1024
DEFAULT_TIMEOUT = 600.0  # seconds, whole transmission

ProgressCallback = Callable[[int, int], None]


@dataclass
class TransportOptions:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_size: int | None = None
    timeout: float | None = DEFAULT_TIMEOUT
    on_progress: ProgressCallback | None = None
    headers: dict[str, str] = field(default_factory=dict)
    form_fields: list[tuple[str, str]] = field(default_factory=list)
    file_field: str = 'file'
    method: str = 'POST'


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    headers: dict[str, str]
    body: bytes

    def json(self):
        return json.loads(self.body)

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')


def _form_part_header(boundary: str, name: str, filename: str | None = None, content_type: str | None = None) -> bytes:
    disposition = f'Content-Disposition: form-data; name="{name}"'
    if filename is not None:
        disposition += f'; filename="{filename}"'
    lines = [f'--{boundary}', disposition]
    if content_type is not None:
        lines.append(f'Content-Type: {content_type}')
    return ('\r\n'.join(lines) + '\r\n\r\n').encode('utf-8')


class HttpChunkedTransport:
    """Sends a MediaHandle to an HTTP endpoint with progress reporting.

    ``send`` streams one request whose body is produced chunk by chunk;
    ``send_chunks`` splits the payload into separate multipart requests.
    Pass an ``httpx`` transport (e.g. ``httpx.MockTransport``) to redirect traffic.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def _client(self, timeout: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=httpx.Timeout(timeout))

    async def _read_chunks(self, source: MediaHandle, chunk_size: int) -> AsyncIterator[bytes]:
        with source.path.open('rb') as f:
            while True:
                chunk = await asyncio.to_thread(f.read, chunk_size)
                if not chunk:
                    return
                yield chunk

    async def send(self, source: MediaHandle, destination: str, options: TransportOptions | None = None) -> TransportResponse:
        """Stream *source* to *destination* as a single multipart request.

        Raises FileTooLargeError before opening the file when the size exceeds
        ``max_size``; TransportError for network, timeout and non-2xx outcomes.
        """
        opts = options or TransportOptions()
        if opts.max_size is not None and source.size > opts.max_size:
            raise FileTooLargeError(source.size, opts.max_size)

        boundary = uuid.uuid4().hex
        preamble = b''.join(
            _form_part_header(boundary, name) + value.encode('utf-8') + b'\r\n' for name, value in opts.form_fields
        )
        preamble += _form_part_header(boundary, opts.file_field, source.name, source.mime_type)
        epilogue = f'\r\n--{boundary}--\r\n'.encode('utf-8')
        total = source.size

        async def body() -> AsyncIterator[bytes]:
            yield preamble
            sent = 0
            async for chunk in self._read_chunks(source, opts.chunk_size):
                yield chunk
                sent += len(chunk)
                log.debug('Sent %d/%d bytes of %s', sent, total, source.name)
                if opts.on_progress is not None:
                    opts.on_progress(sent, total)
            yield epilogue

        headers = {
            **opts.headers,
            'Content-Type': f'multipart/form-data; boundary={boundary}',
            'Content-Length': str(len(preamble) + total + len(epilogue)),
        }
        log.info('Sending %s (%d bytes) to %s', source.name, total, destination)
        return await self._request(opts.method, destination, body(), headers, opts.timeout)

    async def send_chunks(
        self,
        source: MediaHandle,
        destination: str,
        options: TransportOptions | None = None,
    ) -> TransportResponse:
        """Post *source* as ``totalChunks`` separate multipart requests; return the last response.

        Each request carries ``chunkIndex``, ``totalChunks``, ``offset``,
        ``totalSize`` and ``fileName`` alongside the chunk bytes.
        """
        opts = options or TransportOptions(chunk_size=MULTIPART_CHUNK_SIZE)
        if opts.max_size is not None and source.size > opts.max_size:
            raise FileTooLargeError(source.size, opts.max_size)

        total = source.size
        total_chunks = max(1, math.ceil(total / opts.chunk_size))
        offset = 0
        response: TransportResponse | None = None
        async for index, chunk in _enumerate(self._read_chunks(source, opts.chunk_size)):
            fields = {
                **dict(opts.form_fields),
                'chunkIndex': str(index),
                'totalChunks': str(total_chunks),
                'offset': str(offset),
                'totalSize': str(total),
                'fileName': source.name,
            }
            files = {opts.file_field: (source.name, chunk, source.mime_type)}
            response = await self._request(
                opts.method, destination, None, dict(opts.headers), opts.timeout, data=fields, files=files
            )
            offset += len(chunk)
            log.debug('Uploaded chunk %d/%d of %s', index + 1, total_chunks, source.name)
            if opts.on_progress is not None:
                opts.on_progress(offset, total)

        if response is None:
            # Empty payload still registers as one (empty) chunk.
            response = await self._request(
                opts.method,
                destination,
                None,
                dict(opts.headers),
                opts.timeout,
                data={'chunkIndex': '0', 'totalChunks': '1', 'offset': '0', 'totalSize': '0', 'fileName': source.name},
                files={opts.file_field: (source.name, b'', source.mime_type)},
            )
        return response

    async def _request(
        self,
        method: str,
        url: str,
        content: AsyncIterator[bytes] | None,
        headers: dict[str, str],
        timeout: float | None,
        **kwargs,
    ) -> TransportResponse:
        async def _do() -> httpx.Response:
            async with self._client(timeout) as client:
                return await client.request(method, url, content=content, headers=headers, **kwargs)

        try:
            if timeout is None:
                resp = await _do()
            else:
                resp = await asyncio.wait_for(_do(), timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            log.warning('Request to %s timed out after %ss', url, timeout)
            raise timeout_error(f'Upload timeout after {timeout}s') from e
        except httpx.TransportError as e:
            log.warning('Network error talking to %s: %s', url, e)
            raise network_error(f'Network error during upload: {e}') from e

        result = TransportResponse(status_code=resp.status_code, headers=dict(resp.headers), body=resp.content)
        if not resp.is_success:
            retry_after = parse_retry_after(resp.headers.get('retry-after'))
            log.warning('HTTP %d from %s (retry_after=%s)', resp.status_code, url, retry_after)
            raise http_error(resp.status_code, f'HTTP {resp.status_code}: {result.text[:200]}', retry_after=retry_after)
        return result


async def _enumerate(chunks: AsyncIterator[bytes]) -> AsyncIterator[tuple[int, bytes]]:
    index = 0
    async for chunk in chunks:
        yield index, chunk
        index += 1
