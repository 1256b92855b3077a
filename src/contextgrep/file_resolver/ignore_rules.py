"""Gitignore-syntax rulesets bound to a base directory, using pathspec."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

import pathspec

log = logging.getLogger(__name__)


def read_ignore_file(path: Path) -> list[str] | None:
    """
    Read an ignore file's lines, or return `None` if the file is missing,
    unreadable, or not valid UTF-8.
    """
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        log.warning("could not read ignore file %s: %s", path, e)
        return None


def relative_to_base(path: str | Path, base_dir: Path) -> str | None:
    """
    Express `path` relative to `base_dir` with forward slashes, or `None` if it
    is `base_dir` itself or lies outside it.
    """
    rel = os.path.relpath(os.path.abspath(path), base_dir)
    if rel == "." or rel == ".." or rel.startswith(".." + os.sep):
        return None
    return Path(rel).as_posix()


class IgnoreRuleSet:
    """
    Compiled gitignore patterns scoped to `base_dir`. Paths are matched relative to
    `base_dir` and never match outside it. Negation (`!pattern`) follows git's
    last-match-wins rule within the set.
    """

    def __init__(self, base_dir: Path, lines: Iterable[str]) -> None:
        self.base_dir: Path = Path(os.path.abspath(base_dir))
        self.patterns: list[str] = [
            line for line in lines if line.strip() and not line.strip().startswith("#")
        ]
        self._spec: pathspec.GitIgnoreSpec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    @property
    def is_empty(self) -> bool:
        return not self.patterns

    def matches(self, path: str | Path, is_dir: bool = False) -> bool:
        rel = relative_to_base(path, self.base_dir)
        if rel is None:
            return False
        return self.match_relative(rel, is_dir)

    def match_relative(self, rel_path: str, is_dir: bool = False) -> bool:
        """Match a forward-slash path already relative to `base_dir`."""
        if not self.patterns:
            return False
        if is_dir and not rel_path.endswith("/"):
            rel_path += "/"
        return self._spec.match_file(rel_path)

    def __repr__(self) -> str:
        return f"IgnoreRuleSet({str(self.base_dir)!r}, {len(self.patterns)} patterns)"


def load_custom_ignore(paths: Sequence[str | Path], base_dir: Path) -> IgnoreRuleSet:
    """
    Combine the patterns of every ignore file in `paths` into one ruleset based at
    `base_dir`. Files that cannot be loaded are logged and contribute nothing.
    """
    lines: list[str] = []
    for raw in paths:
        path = Path(raw)
        file_lines = read_ignore_file(path)
        if file_lines is None:
            if not path.is_file():
                log.warning("could not load ignore file %s: not found", path)
            continue
        lines.extend(file_lines)
    return IgnoreRuleSet(base_dir, lines)
