"""Pure functions for validating audio input before any upload."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from meeting_scribe.l1_entities.errors import FileTooLargeError, InputValidationError

log = logging.getLogger('msc.pipeline')

HEADER_BYTES = 64
DEFAULT_MAX_FILE_SIZE = 500 * 1024 * 1024
DEFAULT_MAX_DURATION_MINUTES = 180.0


@dataclass(frozen=True)
class AudioFormat:
    mime_type: str
    extension: str
    display_name: str


SUPPORTED_FORMATS: dict[str, AudioFormat] = {
    'audio/mpeg': AudioFormat('audio/mpeg', 'mp3', 'MP3'),
    'audio/wav': AudioFormat('audio/wav', 'wav', 'WAV'),
    'audio/wave': AudioFormat('audio/wave', 'wav', 'WAV'),
    'audio/x-wav': AudioFormat('audio/x-wav', 'wav', 'WAV'),
    'audio/aac': AudioFormat('audio/aac', 'aac', 'AAC'),
    'audio/mp4': AudioFormat('audio/mp4', 'm4a', 'M4A'),
    'audio/x-m4a': AudioFormat('audio/x-m4a', 'm4a', 'M4A'),
    'audio/ogg': AudioFormat('audio/ogg', 'ogg', 'OGG'),
    'audio/webm': AudioFormat('audio/webm', 'webm', 'WebM'),
    'audio/flac': AudioFormat('audio/flac', 'flac', 'FLAC'),
    'audio/x-flac': AudioFormat('audio/x-flac', 'flac', 'FLAC'),
}

EXTENSION_TO_MIME: dict[str, str] = {
    'mp3': 'audio/mpeg',
    'wav': 'audio/wav',
    'aac': 'audio/aac',
    'm4a': 'audio/mp4',
    'ogg': 'audio/ogg',
    'webm': 'audio/webm',
    'flac': 'audio/flac',
}

# (signature, mime type, offset); order matters: ID3 before raw MPEG frame sync,
# and ADTS (0xFFF1/0xFFF9) is disjoint from the MPEG sync bytes listed.
AUDIO_SIGNATURES: list[tuple[bytes, str, int]] = [
    (b'ID3', 'audio/mpeg', 0),
    (b'\xff\xfb', 'audio/mpeg', 0),
    (b'\xff\xf3', 'audio/mpeg', 0),
    (b'\xff\xf2', 'audio/mpeg', 0),
    (b'RIFF', 'audio/wav', 0),
    (b'\xff\xf1', 'audio/aac', 0),
    (b'\xff\xf9', 'audio/aac', 0),
    (b'ftyp', 'audio/mp4', 4),
    (b'OggS', 'audio/ogg', 0),
    (b'fLaC', 'audio/flac', 0),
]


def file_extension(filename: str) -> str:
    stem, dot, ext = filename.rpartition('.')
    return ext.lower() if dot and stem else ''


def detect_mime_type(header: bytes) -> str | None:
    """Match the first bytes of a file against known audio signatures."""
    for signature, mime_type, offset in AUDIO_SIGNATURES:
        if header[offset : offset + len(signature)] == signature:
            return mime_type
    return None


def remediation_tip(detected_type: str, extension: str) -> str:
    common = ['MP3', 'WAV', 'AAC', 'M4A']
    if 'video' in detected_type:
        return f'This appears to be a video file. Extract the audio track and save as {", ".join(common)}.'
    if extension == 'wma':
        return 'WMA format is not supported. Convert to MP3 or WAV using audio conversion software.'
    if extension == 'amr':
        return 'AMR format has limited support. Convert to WAV or MP3 for better compatibility.'
    if extension in ('ra', 'ram'):
        return 'RealAudio format is not supported. Convert to MP3 or WAV.'
    return f'Format not recognized. For best results, convert to {" or ".join(common[:2])} using audio conversion software.'


def validate_audio(
    filename: str,
    size: int,
    header: bytes,
    *,
    declared_mime: str | None = None,
    max_size: int = DEFAULT_MAX_FILE_SIZE,
) -> AudioFormat:
    """Check size and format without reading more than *header*.

    Detection order: declared MIME type (unless generic), content sniffing,
    then the file extension.
    """
    if size > max_size:
        raise FileTooLargeError(size, max_size)
    if size == 0:
        raise InputValidationError('File appears to be empty or corrupted.', 'Please select a valid audio file.')

    extension = file_extension(filename)
    mime = declared_mime if declared_mime and declared_mime != 'application/octet-stream' else None
    method = 'declared'
    if mime is None:
        mime = detect_mime_type(header)
        method = 'content-sniffing'
    if mime is None and extension in EXTENSION_TO_MIME:
        mime = EXTENSION_TO_MIME[extension]
        method = 'extension'
    log.debug('MIME detection for %s: %s (method: %s)', filename, mime, method)

    if mime in SUPPORTED_FORMATS:
        fmt = SUPPORTED_FORMATS[mime]
        if extension and extension != fmt.extension:
            log.warning('Extension mismatch: %s has .%s but looks like %s', filename, extension, fmt.display_name)
        return fmt

    shown = mime or (f'{extension.upper()} file' if extension else 'Unknown format')
    raise InputValidationError(f'Unsupported audio format: {shown}', remediation_tip(mime or '', extension))


def validate_duration(duration_seconds: float, max_minutes: float = DEFAULT_MAX_DURATION_MINUTES) -> None:
    if duration_seconds > max_minutes * 60:
        raise InputValidationError(
            f'Audio duration ({duration_seconds / 60:.0f} min) exceeds the {max_minutes:.0f} min limit.',
            'Split the recording into shorter parts.',
        )


def supported_format_names() -> list[str]:
    return sorted({fmt.display_name for fmt in SUPPORTED_FORMATS.values()})
