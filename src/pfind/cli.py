"""CLI entrypoint for pfind."""

import logging
import os
import sys
from contextlib import closing
from typing import Dict, Optional, Tuple

import click

from . import __version__
from .config import ConfigurationError, RootPathError, expand_root, load_config, validate_root
from .models.config import FinderConfig
from .tools.fs_walker import FSWalker, TraversalError


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(message)s"
LOG_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"

EXIT_INTERRUPTED = 130


def _configure_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, stream=sys.stderr)


def _format_stats(stats: Dict[str, int]) -> str:
    matched = stats['files_matched'] + stats['directories_matched'] + stats['symlinks_matched']
    parts = [f"Matched {matched} entries"]
    parts.append(f"Scanned {stats['entries_scanned']} entries in {stats['directories_traversed']} directories")
    if stats['directories_excluded']:
        parts.append(f"Excluded {stats['directories_excluded']} directories")
    if stats['errors']:
        parts.append(f"Errors: {stats['errors']}")
    return " | ".join(parts)


def _drain(walker: FSWalker, root: str, config: FinderConfig) -> None:
    """Print every record as soon as it is produced."""
    with closing(walker.walk(root)) as records:
        for record in records:
            click.echo(record.format_line(config.output_mode))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("root", required=False, default=".")
@click.option("-s", "--search", "search", multiple=True,
              help="Search string to match in entry names (case-insensitive). Repeat to match any of several.")
@click.option("--size", is_flag=True, help="Display file size")
@click.option("--xxhash", "xxhash_flag", is_flag=True, help="Display file xxHash (replaces size)")
@click.option("--printdir", "print_dirs", is_flag=True,
              help="Also print directory names that match the search string")
@click.option("--exclude-file", type=click.Path(dir_okay=False),
              help="File listing directory names to skip, one per line")
@click.option("--exclude", multiple=True, help="Directory name to skip (repeatable)")
@click.option("--exclude-mode", type=click.Choice(["name", "path"]), default=None,
              help="Match exclusions by exact directory name or by path substring")
@click.option("--case-sensitive", is_flag=True, help="Match names case-sensitively")
@click.option("--max-concurrent", type=click.IntRange(min=1), default=None,
              help="Maximum number of directories scanned at once")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="YAML settings file")
@click.option("--no-config", is_flag=True, help="Do not look for a settings file in default locations")
@click.option("--stats", "show_stats", is_flag=True, help="Print a summary to stderr when done")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity")
@click.option("-q", "--quiet", is_flag=True, help="Only log errors")
@click.version_option(__version__, prog_name="pfind")
def main(
    root: str,
    search: Tuple[str, ...],
    size: bool,
    xxhash_flag: bool,
    print_dirs: bool,
    exclude_file: Optional[str],
    exclude: Tuple[str, ...],
    exclude_mode: Optional[str],
    case_sensitive: bool,
    max_concurrent: Optional[int],
    config_path: Optional[str],
    no_config: bool,
    show_stats: bool,
    verbose: int,
    quiet: bool,
) -> None:
    """Search ROOT (default: current directory) for entries whose name contains a string."""
    _configure_logging(verbose, quiet)

    try:
        root = validate_root(expand_root(root))
    except RootPathError as e:
        raise click.UsageError(str(e))
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    overrides = {
        'query': {
            'terms': list(search) or None,
            'case_sensitive': True if case_sensitive else None,
        },
        'size': size or None,
        'xxhash': xxhash_flag or None,
        'print_dirs': print_dirs or None,
        'exclude': list(exclude),
        'exclude_file': exclude_file,
        'exclude_mode': exclude_mode,
        'max_concurrent': max_concurrent,
    }

    try:
        result = load_config(config_path, overrides, discover=not no_config)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    for warning in result.warnings:
        logger.warning(warning)

    config = result.config
    search_terms = config.query.get_display_terms()
    if search_terms:
        logger.info(f"Search parameter: {', '.join(search_terms)}")
    logger.debug(f"Configuration: {config}")

    walker = FSWalker(config)
    try:
        _drain(walker, root, config)
    except KeyboardInterrupt:
        click.echo("Interrupted", err=True)
        sys.exit(EXIT_INTERRUPTED)
    except BrokenPipeError:
        # The reader went away (e.g. piped into head); silence the final flush.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    except TraversalError as e:
        raise click.ClickException(str(e))

    if show_stats:
        click.echo(_format_stats(walker.get_stats()), err=True)


if __name__ == "__main__":
    main()
