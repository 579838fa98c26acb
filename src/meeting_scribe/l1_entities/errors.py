"""Domain error types.

Every error carries a stable machine-readable ``code`` and a human message.
Gateways translate library exceptions into these types at the boundary.
"""

from __future__ import annotations

import enum


class ScribeError(Exception):
    """Base class for all pipeline errors."""

    code = 'SCRIBE_ERROR'

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'code': self.code, 'error': self.message}


class InputValidationError(ScribeError):
    """Bad input: empty file, unsupported format, over a hard limit. Never retried."""

    code = 'VALIDATION_ERROR'

    def __init__(self, message: str, remediation_tip: str = '') -> None:
        super().__init__(message)
        self.remediation_tip = remediation_tip


class FileTooLargeError(InputValidationError):
    """Payload exceeds the maximum size allowed by the receiving side."""

    code = 'FILE_TOO_LARGE'

    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(
            f'File size ({size / 1024 / 1024:.1f}MB) exceeds maximum allowed size ({max_size / 1024 / 1024:.1f}MB)',
            remediation_tip='Try compressing the audio file or splitting it into smaller segments.',
        )
        self.size = size
        self.max_size = max_size


class TransportErrorKind(enum.Enum):
    NETWORK = 'network'
    TIMEOUT = 'timeout'
    HTTP = 'http'


class TransportError(ScribeError):
    """Network, timeout, or HTTP-status failure talking to a remote service."""

    code = 'TRANSPORT_ERROR'

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after  # seconds, from the provider's Retry-After hint

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.status_code is not None:
            data['status_code'] = self.status_code
        return data


class AuthError(TransportError):
    """Credentials rejected (401/403). Never retried."""

    code = 'AUTH_ERROR'

    def __init__(self, message: str, status_code: int = 401) -> None:
        super().__init__(message, TransportErrorKind.HTTP, status_code=status_code)


def network_error(message: str) -> TransportError:
    return TransportError(message, TransportErrorKind.NETWORK)


def timeout_error(message: str) -> TransportError:
    return TransportError(message, TransportErrorKind.TIMEOUT)


def http_error(status_code: int, message: str = '', retry_after: float | None = None) -> TransportError:
    """Build the right error for an HTTP status; 401/403 become AuthError."""
    text = message or f'HTTP {status_code}'
    if status_code in (401, 403):
        return AuthError(text, status_code=status_code)
    return TransportError(text, TransportErrorKind.HTTP, status_code=status_code, retry_after=retry_after)


class RetryExhaustedError(ScribeError):
    """Raised after the last allowed attempt failed (or a non-retryable error stopped the loop)."""

    code = 'RETRY_EXHAUSTED'

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f'Failed after {attempts} attempts: {last_error}')
        self.attempts = attempts
        self.last_error = last_error

    @property
    def status_code(self) -> int | None:
        return getattr(self.last_error, 'status_code', None)


class SegmentationError(ScribeError):
    """The recording could not be divided into segments. Fails the run."""

    code = 'SEGMENTATION_ERROR'


class SegmentTranscriptionError(ScribeError):
    """A single segment failed after its retries were exhausted."""

    code = 'SEGMENT_TRANSCRIPTION_ERROR'

    def __init__(self, segment_index: int, cause: BaseException) -> None:
        super().__init__(f'Segment {segment_index}: {cause}')
        self.segment_index = segment_index
        self.cause = cause


class AggregateSegmentError(ScribeError):
    """One or more segments failed; carries every per-segment failure."""

    code = 'PARALLEL_TRANSCRIPTION_ERROR'

    def __init__(self, failures: list[SegmentTranscriptionError]) -> None:
        self.failures = sorted(failures, key=lambda f: f.segment_index)
        details = ', '.join(str(f) for f in self.failures)
        super().__init__(f'Failed to transcribe {len(self.failures)} segments: {details}')

    @property
    def failed_indices(self) -> list[int]:
        return [f.segment_index for f in self.failures]

    def to_dict(self) -> dict:
        data = super().to_dict()
        data['failed_segments'] = self.failed_indices
        return data


class IncompleteResultError(ScribeError):
    """Segment results are missing an index (gap in 0..n-1)."""

    code = 'INCOMPLETE_RESULTS'


class SummaryFailedError(ScribeError):
    """The summary call failed or returned something unparseable."""

    code = 'SUMMARY_FAILED'
