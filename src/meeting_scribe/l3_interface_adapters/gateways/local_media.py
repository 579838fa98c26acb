"""Gateway: open and validate a local recording without reading its payload."""

from __future__ import annotations

from pathlib import Path

from meeting_scribe.l1_entities.audio import MediaHandle
from meeting_scribe.l2_use_cases.utils.file_validation import DEFAULT_MAX_FILE_SIZE, HEADER_BYTES, validate_audio


def open_media(path: Path, max_size: int = DEFAULT_MAX_FILE_SIZE) -> MediaHandle:
    """Stat *path*, sniff its first bytes, and return a validated handle.

    Raises:
        FileNotFoundError: *path* does not exist.
        InputValidationError: empty, oversized, or unsupported recording.
    """
    if not path.is_file():
        raise FileNotFoundError(f'Audio file not found: {path}')
    size = path.stat().st_size
    with path.open('rb') as f:
        header = f.read(HEADER_BYTES)
    fmt = validate_audio(path.name, size, header, max_size=max_size)
    return MediaHandle(path=path, size=size, mime_type=fmt.mime_type)
