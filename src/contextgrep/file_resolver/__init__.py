"""
File discovery with gitignore-aware traversal and a fixed-precedence filter chain.

No imports from `contextgrep` outside this package except `contextgrep.errors`.

Usage::

    from contextgrep.file_resolver import FilterConfig, TreeWalker

    config = FilterConfig(exclude=["**/*.lock"], ignore_files=["custom.ignore"])
    walker = TreeWalker(config)
    files = walker.resolve([".", "docs/**/*.md"])
"""

from contextgrep.file_resolver.filters import PathFilter, Verdict
from contextgrep.file_resolver.gitignore import GitignoreResolver
from contextgrep.file_resolver.globs import GlobPattern, PatternKind, compile_glob, expand_glob
from contextgrep.file_resolver.ignore_rules import IgnoreRuleSet
from contextgrep.file_resolver.types import FilterConfig
from contextgrep.file_resolver.walker import TreeWalker

__all__ = [
    "FilterConfig",
    "GitignoreResolver",
    "GlobPattern",
    "IgnoreRuleSet",
    "PathFilter",
    "PatternKind",
    "TreeWalker",
    "Verdict",
    "compile_glob",
    "expand_glob",
]
