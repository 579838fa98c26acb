"""meeting-scribe: segmented transcription and meeting summaries for long recordings."""

__version__ = '0.1.0'
