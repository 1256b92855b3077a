#!/usr/bin/env python3
"""
contextgrep: Gather file contents into one blob for LLM prompts

Common usage:
  contextgrep .
  contextgrep 'src/**/*.py' README.md
  contextgrep -e '**/*.lock' --ignore-file .promptignore . -o context.txt
  git ls-files | contextgrep
  contextgrep --list-files .

Paths may be files, directories, or glob patterns (`*`, `?`, `[...]`, `**`).
With no arguments, paths are read from stdin (one per line) if it is piped,
otherwise the current directory is used. `.gitignore` files are respected and
binary files skipped by default.

Templates use {path}, {abspath}, {basename}, {filename}, {extension}, {content}.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from contextgrep.config import find_config_file, load_config, merge_cli_with_config
from contextgrep.errors import ConfigError, OutputError, TemplateError
from contextgrep.file_resolver import FilterConfig, TreeWalker
from contextgrep.output import write_output
from contextgrep.templates import load_template


@dataclass
class Options:
    """Command-line options for the contextgrep tool."""

    files: list[str]
    output: str | None
    template: str | None
    template_file: str | None
    version: bool
    verbose: bool
    list_files: bool
    # File discovery options
    recursive: bool
    respect_gitignore: bool
    ignore_files: list[str]
    exclude: list[str]
    binary_check: bool
    workers: int


def _split_patterns(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma-separated flag values."""
    result: list[str] = []
    for value in values or []:
        result.extend(part for part in value.split(",") if part)
    return result


def _parse_args(args: list[str] | None = None) -> tuple[Options, set[str]]:
    """
    Parse command-line arguments.

    Returns a tuple of (options, explicit_flags) where `explicit_flags` tracks which
    flags the user explicitly passed (for config merge precedence).
    """
    # Use the module's docstring as the description
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        prog="contextgrep",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "files",
        nargs="*",
        type=str,
        default=[],
        help="Files, directories, or glob patterns (default: stdin lines, else '.')",
    )
    parser.add_argument(
        "-r",
        "--no-recursive",
        action="store_true",
        dest="no_recursive",
        help="Only consider direct children of directories (inputs containing '**' still recurse)",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Glob pattern for files or directories to exclude. Can be repeated",
    )
    parser.add_argument(
        "--no-gitignore",
        action="store_true",
        dest="no_gitignore",
        help="Do not respect the rules found in .gitignore files",
    )
    parser.add_argument(
        "--ignore-file",
        action="append",
        default=[],
        dest="ignore_file",
        metavar="PATH",
        help="Path to a custom ignore file (gitignore syntax). Can be repeated",
    )
    parser.add_argument(
        "--no-binary-check",
        action="store_true",
        dest="no_binary_check",
        help="Disable the binary file check",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=1,
        metavar="N",
        help="Walk up to N input paths in parallel (default: %(default)s)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write the output to a file instead of stdout",
    )
    parser.add_argument(
        "--template",
        type=str,
        default=None,
        help="Template string defining the output format for each file",
    )
    parser.add_argument(
        "--template-file",
        type=str,
        default=None,
        dest="template_file",
        metavar="PATH",
        help="Read the template from a file",
    )
    parser.add_argument(
        "--list-files",
        action="store_true",
        dest="list_files",
        help="Print resolved file paths without formatting",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log each excluded path and the rule that excluded it",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    # Re-parse with sentinel defaults to detect which flags were actually supplied.
    # append actions use None as sentinel (argparse creates a list when the flag is used).
    _SENTINEL = object()
    _tracked_flags: dict[str, str] = {
        # argparse dest name -> Options field name
        "no_recursive": "recursive",
        "exclude": "exclude",
        "no_gitignore": "respect_gitignore",
        "ignore_file": "ignore_files",
        "no_binary_check": "binary_check",
        "jobs": "workers",
        "template": "template",
        "template_file": "template_file",
    }
    sentinel_parser = argparse.ArgumentParser(add_help=False)
    sentinel_parser.add_argument(
        "-r", "--no-recursive", dest="no_recursive", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument("-e", "--exclude", action="append", default=None)
    sentinel_parser.add_argument(
        "--no-gitignore", dest="no_gitignore", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument("--ignore-file", dest="ignore_file", action="append", default=None)
    sentinel_parser.add_argument(
        "--no-binary-check", dest="no_binary_check", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument("-j", "--jobs", type=int, default=_SENTINEL)
    sentinel_parser.add_argument("--template", default=_SENTINEL)
    sentinel_parser.add_argument("--template-file", dest="template_file", default=_SENTINEL)
    sentinel_opts, _ = sentinel_parser.parse_known_args(args if args is not None else sys.argv[1:])

    explicit_flags: set[str] = set()
    for dest_name, field_name in _tracked_flags.items():
        val = getattr(sentinel_opts, dest_name, _SENTINEL)
        # For append actions, None means not supplied; a list means supplied
        if dest_name in ("exclude", "ignore_file"):
            if val is not None:
                explicit_flags.add(field_name)
        elif val is not _SENTINEL:
            explicit_flags.add(field_name)

    return (
        Options(
            files=opts.files,
            output=opts.output,
            template=opts.template,
            template_file=opts.template_file,
            version=opts.version,
            verbose=opts.verbose,
            list_files=opts.list_files,
            recursive=not opts.no_recursive,
            respect_gitignore=not opts.no_gitignore,
            ignore_files=opts.ignore_file,
            exclude=_split_patterns(opts.exclude),
            binary_check=not opts.no_binary_check,
            workers=opts.jobs,
        ),
        explicit_flags,
    )


def get_input_paths(args: list[str], stdin: TextIO | None = None) -> list[str]:
    """
    Input paths from arguments, else from piped stdin (one per line, blank lines
    skipped), else the current directory.
    """
    if args:
        return args
    stdin = stdin if stdin is not None else sys.stdin
    if stdin is not None and not stdin.isatty():
        paths = [line.strip() for line in stdin if line.strip()]
        if paths:
            return paths
    return ["."]


def _configure_logging(verbose: bool) -> None:
    """Send contextgrep's diagnostics to stderr as `WARNING: ...` lines."""
    logger = logging.getLogger("contextgrep")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the contextgrep CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    options, explicit_flags = _parse_args(args)
    _configure_logging(options.verbose)

    # Display version information if requested
    if options.version:
        try:
            version = importlib.metadata.version("contextgrep")
            print(version)
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    # Load and merge config file settings
    try:
        config_path = find_config_file(Path.cwd())
        if config_path:
            merge_cli_with_config(options, load_config(config_path), explicit_flags)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    walker = TreeWalker(
        FilterConfig(
            recursive=options.recursive,
            respect_gitignore=options.respect_gitignore,
            ignore_files=list(options.ignore_files),
            exclude=list(options.exclude),
            binary_check=options.binary_check,
            workers=max(1, options.workers),
        )
    )
    files = walker.resolve(get_input_paths(options.files))

    # Handle --list-files mode (print and exit)
    if options.list_files:
        for f in files:
            print(f.as_posix())
        return 0

    try:
        template = load_template(options.template, options.template_file)
        write_output(files, template, options.output)
    except (TemplateError, OutputError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
