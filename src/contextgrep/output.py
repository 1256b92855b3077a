"""Writing formatted files to stdout or an output file."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from strif import atomic_output_file

from contextgrep.errors import OutputError
from contextgrep.templates import format_file

log = logging.getLogger(__name__)


def write_formatted(
    files: Sequence[Path], template: str, stream: TextIO, cwd: Path | None = None
) -> int:
    """
    Render each file into `stream`. A newline goes between two entries when the
    first doesn't end with one; nothing is added after the last. Files that can't be
    read are logged and skipped. Returns the number of files written.
    """
    written = 0
    needs_separator = False
    for path in files:
        try:
            rendered = format_file(path, template, cwd=cwd)
        except OSError as e:
            log.warning("could not read %s: %s", path, e)
            continue
        if needs_separator:
            stream.write("\n")
        stream.write(rendered)
        needs_separator = bool(rendered) and not rendered.endswith("\n")
        written += 1
    return written


def write_output(
    files: Sequence[Path],
    template: str,
    output: str | Path | None = None,
    cwd: Path | None = None,
) -> int:
    """
    Write all files to stdout (`output` is `None` or `-`) or atomically to a file,
    creating parent directories. Raises `OutputError` if the file can't be written.
    """
    if output is None or str(output) == "-":
        return write_formatted(files, template, sys.stdout, cwd=cwd)

    out_path = Path(output)
    try:
        with atomic_output_file(out_path, make_parents=True) as tmp_path:
            with open(tmp_path, "w", encoding="utf-8", newline="\n") as f:
                written = write_formatted(files, template, f, cwd=cwd)
    except OSError as e:
        raise OutputError(f"could not write output file {out_path}: {e}") from e

    log.info("wrote %d files to %s", written, out_path)
    return written
