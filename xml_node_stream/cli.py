"""
Command-line interface for the XML node streaming library.

This module provides a CLI for splitting large XML documents into nodes,
counting and validating nodes, and benchmarking extraction.
"""

import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Tuple

import click
import yaml

from xml_node_stream import __version__
from xml_node_stream.benchmarking import DEFAULT_CHUNK_SIZES, StreamerBenchmark
from xml_node_stream.core.base import ConfigurationError, Node
from xml_node_stream.core.config import ExtractorConfig, load_config_file, resolve_config
from xml_node_stream.core.streaming import NodeStreamer
from xml_node_stream.logging_config import (
    LogLevel,
    configure_logging,
    get_logger,
    performance_log,
    user_success,
)
from xml_node_stream.utils.validation import NodeValidator

logger = get_logger(__name__)

DEFAULT_CLI_CHUNK_SIZE = 64 * 1024


def safe_content_display(content: str, max_length: int = 100) -> str:
    """Truncate node text for one-line display."""
    content = " ".join(content.split())
    if len(content) > max_length:
        return content[:max_length] + "..."
    return content


def extractor_options(func):
    """Options shared by every command that runs the extractor."""
    func = click.option('--encoding', help='Document encoding (default: utf-8)')(func)
    func = click.option('--config', '-c', 'config_path', type=click.Path(exists=True, path_type=Path),
                        help='YAML or JSON configuration file')(func)
    func = click.option('--chunk-size', type=click.IntRange(min=1),
                        help=f'Bytes read per request (default: {DEFAULT_CLI_CHUNK_SIZE})')(func)
    func = click.option('--expect-gt/--no-expect-gt', default=None,
                        help='Treat tags ending in "/>" as self-closing')(func)
    func = click.option('--capture-depth', '-d', type=click.IntRange(min=0),
                        help='Nesting depth of the nodes to extract (default: 1)')(func)
    return func


def build_streamer(
    config_path: Optional[Path],
    capture_depth: Optional[int],
    expect_gt: Optional[bool],
    chunk_size: Optional[int],
    encoding: Optional[str],
) -> NodeStreamer:
    """Combine config file settings with command-line overrides."""
    base: Optional[ExtractorConfig] = None
    settings: Dict[str, Any] = {}
    if config_path:
        file_config = load_config_file(config_path)
        base = file_config.extractor
        settings = file_config.settings

    config = resolve_config(base, capture_depth=capture_depth, expect_gt=expect_gt, encoding=encoding)
    chunk_size = chunk_size or settings.get('chunk_size') or DEFAULT_CLI_CHUNK_SIZE
    return NodeStreamer(chunk_size=chunk_size, config=config)


def write_node(out: TextIO, node: Node, output_format: str) -> None:
    if output_format == 'jsonl':
        out.write(json.dumps(node.to_dict(), ensure_ascii=False) + "\n")
    elif output_format == 'yaml':
        out.write(yaml.safe_dump([node.to_dict()], allow_unicode=True, sort_keys=False))
    else:
        out.write(node.content + "\n")


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress output except errors')
@click.option('--debug', is_flag=True, help='Enable debug mode with detailed logging')
@click.option('--log-level', type=click.Choice(['silent', 'minimal', 'normal', 'verbose', 'debug', 'trace']),
              help='Set specific log level')
@click.option('--log-file', type=click.Path(path_type=Path), help='Write logs to file')
@click.option('--log-json', is_flag=True, help='Write log lines as JSON objects')
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, debug: bool,
         log_level: Optional[str], log_file: Optional[Path], log_json: bool) -> None:
    """
    XML Node Stream CLI

    Split XML documents of any size into individual nodes without loading them into memory.
    """
    ctx.ensure_object(dict)

    if debug:
        level = LogLevel.DEBUG
    elif log_level:
        level = LogLevel(log_level.lower())
    elif quiet:
        level = LogLevel.SILENT
    elif verbose:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.MINIMAL

    configure_logging(
        level=level,
        file_output=bool(log_file),
        log_file=log_file,
        console_output=not quiet,
        format_json=log_json,
        collect_performance=debug,
    )

    ctx.obj['verbose'] = verbose or debug
    ctx.obj['quiet'] = quiet
    ctx.obj['debug'] = debug


@main.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@extractor_options
@click.option('--output', '-o', type=click.Path(path_type=Path), help='Output file (default: stdout)')
@click.option('--format', 'output_format', type=click.Choice(['jsonl', 'text', 'yaml']), default='jsonl',
              help='Output format')
@click.option('--limit', type=click.IntRange(min=1), help='Stop after N nodes')
@click.option('--validate', is_flag=True, help='Check every node is well-formed')
def split(
    input_file: Path,
    capture_depth: Optional[int],
    expect_gt: Optional[bool],
    chunk_size: Optional[int],
    config_path: Optional[Path],
    encoding: Optional[str],
    output: Optional[Path],
    output_format: str,
    limit: Optional[int],
    validate: bool,
) -> None:
    """Split INPUT_FILE into nodes and write them out."""
    try:
        streamer = build_streamer(config_path, capture_depth, expect_gt, chunk_size, encoding)
        validator = NodeValidator() if validate else None
        invalid = 0
        written = 0
        start_time = time.time()

        out = open(output, 'w', encoding='utf-8') if output else sys.stdout
        try:
            nodes = streamer.stream_file(input_file)
            try:
                for node in nodes:
                    if validator is not None:
                        issues = validator.validate_node(node)
                        if issues:
                            invalid += 1
                            click.echo(f"Node {node.index}: {'; '.join(issues)}", err=True)
                    write_node(out, node, output_format)
                    written += 1
                    if limit and written >= limit:
                        break
            finally:
                nodes.close()
        finally:
            if output:
                out.close()

        performance_log("split", time.time() - start_time, nodes=written)
        if output:
            user_success(f"Wrote {written} nodes to {output}")
        if invalid:
            click.echo(f"Validation issues found in {invalid} nodes", err=True)
            sys.exit(1)

    except (ConfigurationError, OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@extractor_options
def count(
    input_file: Path,
    capture_depth: Optional[int],
    expect_gt: Optional[bool],
    chunk_size: Optional[int],
    config_path: Optional[Path],
    encoding: Optional[str],
) -> None:
    """Count the nodes in INPUT_FILE."""
    try:
        streamer = build_streamer(config_path, capture_depth, expect_gt, chunk_size, encoding)
        total = sum(1 for _ in streamer.stream_file(input_file))
        click.echo(total)
    except (ConfigurationError, OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@extractor_options
@click.option('--strict', is_flag=True, help='Also report unbound prefixes and surrounding whitespace')
@click.option('--max-issues', type=int, default=10, help='Maximum issues to print')
def validate(
    input_file: Path,
    capture_depth: Optional[int],
    expect_gt: Optional[bool],
    chunk_size: Optional[int],
    config_path: Optional[Path],
    encoding: Optional[str],
    strict: bool,
    max_issues: int,
) -> None:
    """Check that every node of INPUT_FILE is well-formed XML."""
    try:
        streamer = build_streamer(config_path, capture_depth, expect_gt, chunk_size, encoding)
        validator = NodeValidator(strict_mode=strict)
        total = 0
        invalid = 0
        for node in streamer.stream_file(input_file):
            total += 1
            issues = validator.validate_node(node)
            if issues:
                invalid += 1
                if invalid <= max_issues:
                    click.echo(f"Node {node.index} @ byte {node.metadata.offset}: {'; '.join(issues)}")
                    click.echo(f"  {safe_content_display(node.content)}")

        if invalid:
            if invalid > max_issues:
                click.echo(f"... and {invalid - max_issues} more")
            click.echo(f"Validation: FAILED ({invalid} of {total} nodes)")
            sys.exit(1)
        click.echo(f"Validation: PASSED ({total} nodes)")

    except (ConfigurationError, OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--capture-depth', '-d', type=click.IntRange(min=0), help='Nesting depth of the nodes to extract')
@click.option('--expect-gt/--no-expect-gt', default=None, help='Treat tags ending in "/>" as self-closing')
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, path_type=Path),
              help='YAML or JSON configuration file')
@click.option('--chunk-size', 'chunk_sizes', type=click.IntRange(min=1), multiple=True,
              help='Chunk size to benchmark (repeatable)')
@click.option('--output', '-o', type=click.Path(path_type=Path), help='Save results (.json, .yaml)')
@click.option('--no-memory-profiling', is_flag=True, help='Skip tracemalloc profiling')
def benchmark(
    input_file: Path,
    capture_depth: Optional[int],
    expect_gt: Optional[bool],
    config_path: Optional[Path],
    chunk_sizes: Tuple[int, ...],
    output: Optional[Path],
    no_memory_profiling: bool,
) -> None:
    """Benchmark extraction of INPUT_FILE across chunk sizes."""
    try:
        base = load_config_file(config_path).extractor if config_path else None
        runner = StreamerBenchmark(
            enable_memory_profiling=not no_memory_profiling,
            config=base,
            capture_depth=capture_depth,
            expect_gt=expect_gt,
        )
        result = runner.benchmark_file(input_file, chunk_sizes or DEFAULT_CHUNK_SIZES)

        click.echo(f"{'Chunk size':>12} {'Nodes':>10} {'Time (s)':>10} {'MB/s':>8} {'Peak buffer':>12} {'Max node':>10}")
        click.echo("-" * 68)
        for run in result.runs:
            click.echo(
                f"{run.chunk_size:>12,} {run.nodes_extracted:>10,} {run.processing_time:>10.3f} "
                f"{run.throughput_mb_per_sec:>8.2f} {run.peak_buffer_size:>12,} {run.max_node_size:>10,}"
            )

        if output:
            result.save(output)
            click.echo(f"Results saved to {output}")

    except (ConfigurationError, OSError, UnicodeDecodeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
