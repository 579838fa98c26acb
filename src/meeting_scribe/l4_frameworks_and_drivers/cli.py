"""CLI entry point for meeting-scribe."""

from __future__ import annotations

import logging
import re
import sys
from datetime import datetime
from pathlib import Path

import click

from meeting_scribe import __version__


def _make_session_dir(base_dir: Path, label: str | None) -> Path:
    """Create a timestamped session subdirectory under base_dir."""
    stamp = datetime.now().strftime('%Y-%m-%d_%H%M%S')
    if label:
        safe_label = re.sub(r'[^\w\-]', '_', label)
        name = f'{stamp}_{safe_label}'
    else:
        name = stamp
    session_dir = base_dir / name
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def _build_overrides(
    output_dir: str | None,
    api_key: str | None,
    window: float | None,
    overlap: float | None,
    concurrency: int | None,
    no_summary: bool,
) -> dict:
    overrides: dict = {}
    segmentation = {
        key: value
        for key, value in (
            ('window_duration', window),
            ('overlap_duration', overlap),
            ('max_concurrent_segments', concurrency),
        )
        if value is not None
    }
    if segmentation:
        overrides['segmentation'] = segmentation
    if output_dir:
        overrides['output'] = {'directory': output_dir}
    if api_key:
        overrides['transcription_api'] = {'api_key': api_key}
    if no_summary:
        overrides['summary'] = {'enabled': False}
    return overrides


@click.command()
@click.argument('audio_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True),
    help='Path to YAML config file.',
)
@click.option(
    '-o',
    '--output-dir',
    default=None,
    type=click.Path(),
    help='Base output directory (session subfolder created automatically).',
)
@click.option(
    '-l',
    '--label',
    default=None,
    help="Session label appended to the timestamp folder (e.g. 'sprint-review').",
)
@click.option('--api-key', default=None, help='Transcription API key (defaults to $OPENAI_API_KEY).')
@click.option('--window', type=click.FloatRange(min=1), default=None, help='Segment window in seconds.')
@click.option('--overlap', type=click.FloatRange(min=0), default=None, help='Overlap between segments in seconds.')
@click.option('--concurrency', type=click.IntRange(min=1), default=None, help='Maximum segments in flight.')
@click.option('--no-summary', is_flag=True, default=False, help='Skip the summary; print the transcript instead.')
@click.option('-v', '--verbose', is_flag=True, default=False, help='Also log to stderr.')
@click.version_option(version=__version__)
def cli(audio_file, config_path, output_dir, label, api_key, window, overlap, concurrency, no_summary, verbose):
    """meeting-scribe -- segmented transcription and summary of long meeting recordings."""
    from pydantic import ValidationError  # noqa: PLC0415 -- deferred: not needed for --help

    from meeting_scribe.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from meeting_scribe.l4_frameworks_and_drivers.infra_config import (  # noqa: PLC0415 -- deferred: not needed for --help
        InfraConfig,
        build_app_config,
    )

    overrides = _build_overrides(output_dir, api_key, window, overlap, concurrency, no_summary)
    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides or None)
        config = build_app_config(raw)
        infra = InfraConfig.model_validate(raw)
    except (FileNotFoundError, ValueError, ValidationError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)

    if config.segmentation.overlap_duration >= config.segmentation.window_duration:
        click.echo('Error: overlap must be shorter than the segment window.', err=True)
        sys.exit(1)

    base_dir = Path(output_dir or config.output.directory)
    out_dir = _make_session_dir(base_dir, label)

    from meeting_scribe.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_console_logging,
        setup_file_logging,
    )

    setup_file_logging(out_dir)
    if verbose:
        setup_console_logging(logging.DEBUG)

    if infra.transcription_key() is None:
        click.echo('Warning: no transcription API key configured (use --api-key or $OPENAI_API_KEY).', err=True)
    if config.summary.enabled:
        _preflight_llm(infra, config)

    from meeting_scribe.l4_frameworks_and_drivers.batch_runner import (  # noqa: PLC0415 -- deferred: pipeline stack not loaded on --help
        run_batch,
    )

    run_batch(
        audio_path=Path(audio_file),
        config=config,
        out_dir=out_dir,
        infra=infra,
        summarize=config.summary.enabled,
    )


def _preflight_llm(infra, config) -> None:
    from meeting_scribe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: preflight only runs when summarizing
        DependencyContainer,
    )

    ok, err = DependencyContainer.build_llm_client(config, infra).check_connectivity()
    if not ok:
        click.echo(f'Warning: summary LLM not reachable ({err}). The summary step will fail.', err=True)
