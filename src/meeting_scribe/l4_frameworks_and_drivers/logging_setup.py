"""File-based debug logging setup."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_file_logging(output_dir: Path) -> Path:
    """Configure file-based debug logging into the output directory."""
    log_path = output_dir / 'msc_debug.log'
    handler = logging.FileHandler(log_path, encoding='utf-8')
    handler.setFormatter(logging.Formatter(_FORMAT))
    root = logging.getLogger('msc')
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    logging.getLogger('msc.pipeline').info('Debug logging started → %s', log_path)
    return log_path


def setup_console_logging(level: int = logging.INFO) -> None:
    """Mirror ``msc.*`` records at *level* and above to stderr (``--verbose``)."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
    root = logging.getLogger('msc')
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
