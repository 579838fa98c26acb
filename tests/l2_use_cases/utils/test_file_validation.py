"""Tests for audio input validation: header bytes only, no decoding."""

from __future__ import annotations

import pytest

from meeting_scribe.l1_entities.errors import FileTooLargeError, InputValidationError
from meeting_scribe.l2_use_cases.utils.file_validation import (
    DEFAULT_MAX_FILE_SIZE,
    detect_mime_type,
    file_extension,
    supported_format_names,
    validate_audio,
    validate_duration,
)


class TestDetectMimeType:
    @pytest.mark.parametrize(
        ('header', 'expected'),
        [
            (b'ID3\x04\x00', 'audio/mpeg'),
            (b'\xff\xfb\x90\x00', 'audio/mpeg'),
            (b'RIFF\x00\x00\x00\x00WAVE', 'audio/wav'),
            (b'\xff\xf1\x50\x80', 'audio/aac'),
            (b'\x00\x00\x00\x20ftypM4A ', 'audio/mp4'),
            (b'OggS\x00\x02', 'audio/ogg'),
            (b'fLaC\x00\x00', 'audio/flac'),
        ],
    )
    def test_signatures(self, header, expected):
        assert detect_mime_type(header) == expected

    def test_unknown(self):
        assert detect_mime_type(b'%PDF-1.7') is None


class TestFileExtension:
    def test_lowercases(self):
        assert file_extension('Meeting.MP3') == 'mp3'

    def test_no_extension(self):
        assert file_extension('recording') == ''
        assert file_extension('.hidden') == ''


class TestValidateAudio:
    def test_accepts_by_content(self):
        fmt = validate_audio('call.mp3', 1000, b'ID3\x03')
        assert fmt.display_name == 'MP3'

    def test_falls_back_to_extension(self):
        fmt = validate_audio('call.webm', 1000, b'\x1a\x45\xdf\xa3')
        assert fmt.mime_type == 'audio/webm'

    def test_declared_mime_wins(self):
        fmt = validate_audio('call.bin', 1000, b'', declared_mime='audio/ogg')
        assert fmt.display_name == 'OGG'

    def test_generic_declared_mime_ignored(self):
        fmt = validate_audio('call', 1000, b'fLaC', declared_mime='application/octet-stream')
        assert fmt.display_name == 'FLAC'

    def test_too_large(self):
        with pytest.raises(FileTooLargeError) as exc_info:
            validate_audio('big.mp3', DEFAULT_MAX_FILE_SIZE + 1, b'ID3')
        assert exc_info.value.max_size == DEFAULT_MAX_FILE_SIZE

    def test_empty(self):
        with pytest.raises(InputValidationError, match='empty'):
            validate_audio('empty.mp3', 0, b'')

    def test_unsupported_with_tip(self):
        with pytest.raises(InputValidationError) as exc_info:
            validate_audio('voice.wma', 1000, b'\x30\x26\xb2\x75')
        assert 'WMA' in exc_info.value.remediation_tip
        assert 'Unsupported audio format' in exc_info.value.message

    def test_video_tip(self):
        with pytest.raises(InputValidationError) as exc_info:
            validate_audio('clip.mov', 1000, b'', declared_mime='video/quicktime')
        assert 'video file' in exc_info.value.remediation_tip


class TestValidateDuration:
    def test_within_limit(self):
        validate_duration(180 * 60, 180)

    def test_over_limit(self):
        with pytest.raises(InputValidationError, match='exceeds'):
            validate_duration(181 * 60, 180)


def test_supported_format_names():
    assert supported_format_names() == ['AAC', 'FLAC', 'M4A', 'MP3', 'OGG', 'WAV', 'WebM']
