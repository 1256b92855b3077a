"""Configuration types for file resolution."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FilterConfig:
    """
    Options controlling discovery and filtering. Created once, read-only thereafter.

    `ignore_files` are paths of gitignore-syntax files whose patterns apply globally,
    relative to the working directory. `exclude` holds glob patterns matched against
    paths as discovered. `workers` > 1 walks top-level inputs in parallel.
    """

    recursive: bool = True
    respect_gitignore: bool = True
    ignore_files: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    binary_check: bool = True
    workers: int = 1
