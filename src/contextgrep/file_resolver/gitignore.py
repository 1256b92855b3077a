"""Hierarchical `.gitignore` handling with a per-directory ruleset cache."""

from __future__ import annotations

import os
import threading
from pathlib import Path

from contextgrep.file_resolver.ignore_rules import IgnoreRuleSet, read_ignore_file

GITIGNORE_NAME = ".gitignore"


def load_gitignore(directory: Path) -> IgnoreRuleSet | None:
    """
    Read `.gitignore` in the given directory and return a ruleset based there,
    or `None` if the file doesn't exist, can't be read, or has no patterns.
    """
    lines = read_ignore_file(directory / GITIGNORE_NAME)
    if lines is None:
        return None
    rules = IgnoreRuleSet(directory, lines)
    if rules.is_empty:
        return None
    return rules


class GitignoreResolver:
    """
    Answers whether a path is ignored by the `.gitignore` of any ancestor directory.

    Ancestors are visited nearest first, up to the filesystem root. A match at any
    level ignores the path; a deeper `.gitignore` can't re-include a path that a
    shallower one ignores. Each directory's ruleset is compiled at most once per
    resolver. The cache is safe to share between threads.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled: bool = enabled
        self._cache: dict[Path, IgnoreRuleSet | None] = {}
        self._lock: threading.Lock = threading.Lock()

    def rules_for(self, directory: Path) -> IgnoreRuleSet | None:
        """Load and cache the ruleset for one directory."""
        with self._lock:
            if directory in self._cache:
                return self._cache[directory]
        # Compile outside the lock; a concurrent duplicate is discarded below.
        rules = load_gitignore(directory)
        with self._lock:
            return self._cache.setdefault(directory, rules)

    @property
    def cached_directories(self) -> list[Path]:
        with self._lock:
            return list(self._cache)

    def is_ignored(self, path: str | Path, is_dir: bool | None = None) -> bool:
        if not self.enabled:
            return False

        target = Path(os.path.abspath(path))
        if is_dir is None:
            is_dir = target.is_dir()

        current = target if is_dir else target.parent
        while True:
            rules = self.rules_for(current)
            if rules is not None and rules.matches(target, is_dir):
                return True
            parent = current.parent
            if parent == current:
                break
            current = parent
        return False
