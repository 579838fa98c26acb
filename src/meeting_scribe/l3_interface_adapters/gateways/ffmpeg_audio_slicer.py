"""Gateway: ffmpeg/ffprobe subprocess slicer, implements AudioSlicer port."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess  # noqa: S404 -- intentional: shells out to ffmpeg with a fixed arg list, not shell=True
import tempfile
from pathlib import Path

from meeting_scribe.l1_entities.audio import MediaHandle

log = logging.getLogger('msc.slicer')

_FFMPEG_TIMEOUT = 300  # seconds


def _require(binary: str) -> str:
    path = shutil.which(binary)
    if path is None:
        raise RuntimeError(
            f'{binary} is required but not found on PATH.\n  macOS:  brew install ffmpeg\n  Debian: apt install ffmpeg'
        )
    return path


def _run(cmd: list[str], what: str) -> subprocess.CompletedProcess:
    try:
        result = subprocess.run(cmd, capture_output=True, timeout=_FFMPEG_TIMEOUT)  # noqa: S603
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(f'{cmd[0]} timed out after {_FFMPEG_TIMEOUT}s {what}') from exc
    except OSError as exc:
        raise RuntimeError(f'Failed to launch {cmd[0]}: {exc}') from exc
    if result.returncode != 0:
        stderr = result.stderr.decode('utf-8', errors='replace').strip()
        raise RuntimeError(f'{cmd[0]} exited with code {result.returncode} {what}\n{stderr}')
    return result


class FfmpegAudioSlicer:
    """Cuts time ranges out of a recording with ffmpeg stream copy.

    Slices are written as temporary files next to each other in *temp_dir*
    (system temp dir by default) and removed by release(). Stream copy cuts on
    packet boundaries, so slice edges may drift by a frame.
    """

    def __init__(self, temp_dir: Path | None = None) -> None:
        self._temp_dir = temp_dir

    def probe_duration(self, media: MediaHandle) -> float:
        """Return the container duration reported by ffprobe, in seconds.

        Raises:
            FileNotFoundError: the recording does not exist.
            RuntimeError: ffprobe is missing, failed, or reported no duration.
        """
        if not media.path.exists():
            raise FileNotFoundError(f'Audio file not found: {media.path}')
        cmd = [
            _require('ffprobe'),
            '-v',
            'error',
            '-show_entries',
            'format=duration',
            '-of',
            'default=noprint_wrappers=1:nokey=1',
            str(media.path),
        ]
        result = _run(cmd, f'probing: {media.path}')
        raw = result.stdout.decode('utf-8', errors='replace').strip()
        try:
            duration = float(raw)
        except ValueError as exc:
            raise RuntimeError(f'ffprobe reported no duration for: {media.path} ({raw!r})') from exc
        log.debug('Probed %s: %.2fs', media.name, duration)
        return duration

    def slice(self, media: MediaHandle, start: float, end: float, index: int) -> MediaHandle:
        suffix = media.path.suffix or '.wav'
        fd, name = tempfile.mkstemp(prefix=f'segment_{index:03d}_', suffix=suffix, dir=self._temp_dir)
        os.close(fd)
        out = Path(name)
        cmd = [
            _require('ffmpeg'),
            '-y',
            '-v',
            'error',
            '-ss',
            f'{start:.3f}',
            '-i',
            str(media.path),
            '-t',
            f'{end - start:.3f}',
            '-c',
            'copy',
            str(out),
        ]
        try:
            _run(cmd, f'slicing segment {index} of: {media.path}')
        except RuntimeError:
            out.unlink(missing_ok=True)
            raise
        size = out.stat().st_size
        log.debug('Sliced segment %d [%.1f, %.1f) of %s -> %s (%d bytes)', index, start, end, media.name, out, size)
        return MediaHandle(path=out, size=size, mime_type=media.mime_type, is_temporary=True)

    def release(self, handle: MediaHandle) -> None:
        if handle.is_temporary:
            handle.path.unlink(missing_ok=True)
