"""
The precedence chain deciding whether a path is kept.

Stages run in a fixed order and the first exclusion wins:

1. Explicit exclude globs
2. Custom ignore files (one global ruleset)
3. The `.gitignore` hierarchy
4. Binary content sniffing (files only)

Directories only go through the first three, so the walker can prune whole subtrees
before listing them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from contextgrep.errors import InvalidPatternError
from contextgrep.file_resolver.gitignore import GitignoreResolver
from contextgrep.file_resolver.globs import GlobPattern, compile_glob
from contextgrep.file_resolver.ignore_rules import IgnoreRuleSet, load_custom_ignore
from contextgrep.file_resolver.types import FilterConfig

log = logging.getLogger(__name__)

BINARY_SNIFF_BYTES = 1024


class Verdict(Enum):
    EXCLUDE = "exclude"
    NO_OPINION = "no_opinion"


class FilterStage(Protocol):
    """One step of the precedence chain."""

    @property
    def name(self) -> str: ...

    @property
    def applies_to_dirs(self) -> bool: ...

    def check(self, path: Path, is_dir: bool) -> Verdict: ...


@dataclass(frozen=True)
class ExcludeGlobStage:
    patterns: tuple[GlobPattern, ...]
    name: str = "exclude"
    applies_to_dirs: bool = True

    def check(self, path: Path, is_dir: bool) -> Verdict:
        posix = path.as_posix()
        if any(p.matches(posix) for p in self.patterns):
            return Verdict.EXCLUDE
        return Verdict.NO_OPINION


@dataclass(frozen=True)
class CustomIgnoreStage:
    rules: IgnoreRuleSet
    name: str = "ignore-file"
    applies_to_dirs: bool = True

    def check(self, path: Path, is_dir: bool) -> Verdict:
        if self.rules.matches(path, is_dir):
            return Verdict.EXCLUDE
        return Verdict.NO_OPINION


@dataclass(frozen=True)
class GitignoreStage:
    resolver: GitignoreResolver
    name: str = "gitignore"
    applies_to_dirs: bool = True

    def check(self, path: Path, is_dir: bool) -> Verdict:
        if self.resolver.is_ignored(path, is_dir):
            return Verdict.EXCLUDE
        return Verdict.NO_OPINION


@dataclass(frozen=True)
class BinaryStage:
    sniff_bytes: int = BINARY_SNIFF_BYTES
    name: str = "binary"
    applies_to_dirs: bool = False

    def check(self, path: Path, is_dir: bool) -> Verdict:
        try:
            binary = is_binary(path, self.sniff_bytes)
        except OSError as e:
            log.warning("could not read %s: %s", path, e)
            return Verdict.EXCLUDE
        return Verdict.EXCLUDE if binary else Verdict.NO_OPINION


def is_binary(path: Path, sniff_bytes: int = BINARY_SNIFF_BYTES) -> bool:
    """Check for a zero byte in the first `sniff_bytes` of a file."""
    with path.open("rb") as f:
        return b"\0" in f.read(sniff_bytes)


def compile_excludes(patterns: Sequence[str]) -> tuple[GlobPattern, ...]:
    """Compile exclude globs, skipping (and logging) any with invalid syntax."""
    compiled: list[GlobPattern] = []
    for pattern in patterns:
        # `build/` names a directory; match it by name.
        text = pattern.rstrip("/") or pattern
        try:
            compiled.append(compile_glob(text))
        except InvalidPatternError as e:
            log.warning("%s", e)
    return tuple(compiled)


class PathFilter:
    """Evaluates an ordered tuple of stages; the first `EXCLUDE` short-circuits."""

    def __init__(self, stages: Sequence[FilterStage]) -> None:
        self.stages: tuple[FilterStage, ...] = tuple(stages)

    @classmethod
    def from_config(cls, config: FilterConfig, cwd: Path | None = None) -> PathFilter:
        """Build the standard chain. Disabled stages are left out entirely."""
        stages: list[FilterStage] = []

        excludes = compile_excludes(config.exclude)
        if excludes:
            stages.append(ExcludeGlobStage(excludes))

        if config.ignore_files:
            custom = load_custom_ignore(config.ignore_files, cwd or Path.cwd())
            if not custom.is_empty:
                stages.append(CustomIgnoreStage(custom))

        if config.respect_gitignore:
            stages.append(GitignoreStage(GitignoreResolver()))

        if config.binary_check:
            stages.append(BinaryStage())

        return cls(stages)

    def excluded_by(self, path: Path, is_dir: bool = False) -> str | None:
        """Return the name of the stage that excludes `path`, or `None`."""
        for stage in self.stages:
            if is_dir and not stage.applies_to_dirs:
                continue
            if stage.check(path, is_dir) is Verdict.EXCLUDE:
                log.debug("excluded %s (%s)", path, stage.name)
                return stage.name
        return None

    def include(self, path: Path, is_dir: bool = False) -> bool:
        return self.excluded_by(path, is_dir) is None
