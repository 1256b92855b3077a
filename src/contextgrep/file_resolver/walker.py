"""
TreeWalker: main entry point for file discovery.

Resolves a mix of files, directories, and glob patterns into a deduplicated,
sorted list of concrete file paths, applying the `PathFilter` chain.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from contextgrep.errors import InvalidPatternError
from contextgrep.file_resolver.filters import PathFilter
from contextgrep.file_resolver.globs import expand_glob
from contextgrep.file_resolver.types import FilterConfig

log = logging.getLogger(__name__)


class TreeWalker:
    """
    Expands inputs, walks directories, and keeps the files the filter accepts.

    Excluded subdirectories are pruned before they are listed, so ignored trees such
    as `node_modules/` are never entered. In non-recursive mode only the direct
    children of each directory are considered, unless the input that produced the
    directory contained `**`.
    """

    def __init__(self, config: FilterConfig, path_filter: PathFilter | None = None) -> None:
        self._config: FilterConfig = config
        self._filter: PathFilter = path_filter or PathFilter.from_config(config)

    @property
    def path_filter(self) -> PathFilter:
        return self._filter

    def resolve(self, paths: Sequence[str | Path]) -> list[Path]:
        """
        Resolve input paths into a list of files sorted by path string.

        Empty input means the current directory. Inputs that match nothing are
        skipped, as are invalid glob patterns (with a warning).
        """
        candidates = self._expand(paths or ["."])

        found: dict[Path, Path] = {}
        if self._config.workers > 1 and len(candidates) > 1:
            with ThreadPoolExecutor(max_workers=self._config.workers) as executor:
                batches = executor.map(
                    lambda item: self._collect(*item), list(candidates.items())
                )
                for batch in batches:
                    self._merge(found, batch)
        else:
            for candidate, recursive_input in candidates.items():
                self._merge(found, self._collect(candidate, recursive_input))

        return sorted(found.values(), key=str)

    def _expand(self, paths: Iterable[str | Path]) -> dict[Path, bool]:
        """
        Map each expanded path to whether it came from a recursive (`**`) input.
        A path produced by several inputs appears once.
        """
        candidates: dict[Path, bool] = {}
        for raw_path in paths:
            pattern = str(raw_path)
            try:
                matches = expand_glob(pattern)
            except InvalidPatternError as e:
                log.warning("%s", e)
                continue
            if not matches:
                log.debug("no matches for %s", pattern)
            recursive_input = "**" in pattern
            for match in matches:
                candidates[match] = candidates.get(match, False) or recursive_input
        return candidates

    @staticmethod
    def _merge(found: dict[Path, Path], batch: Iterable[Path]) -> None:
        # Keyed by absolute path, not by symlink target: a link and its target are
        # both kept.
        for path in batch:
            found.setdefault(Path(os.path.abspath(path)), path)

    def _collect(self, candidate: Path, recursive_input: bool) -> list[Path]:
        if candidate.is_dir():
            recursive = self._config.recursive or recursive_input
            return list(self._walk_directory(candidate, recursive))
        if candidate.is_file() and self._filter.include(candidate):
            return [candidate]
        return []

    def _walk_directory(self, root: Path, recursive: bool) -> Iterable[Path]:
        """
        Walk a directory tree using `os.walk()`, pruning excluded directories
        in-place. The starting directory itself is not filtered.
        """

        def on_error(err: OSError) -> None:
            log.warning("could not read directory %s: %s", err.filename, err.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)

            if recursive:
                # Prune excluded directories in-place (prevents descent)
                dirnames[:] = [
                    d for d in dirnames if self._filter.include(current / d, is_dir=True)
                ]
            else:
                dirnames[:] = []

            for filename in filenames:
                filepath = current / filename
                # Skip sockets, FIFOs, and dangling symlinks.
                if not filepath.is_file():
                    continue
                if self._filter.include(filepath):
                    yield filepath
