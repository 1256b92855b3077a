"""
Glob compilation and expansion.

Patterns support `*` and `?` within one path segment, `[...]` character classes
(`!` or `^` negates), `\\` escapes, and `**` as a whole segment matching zero or
more directories. Compilation is a pure function from pattern text to an immutable
`GlobPattern`; expansion reads the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from contextgrep.errors import InvalidPatternError

# Characters that indicate a path is a glob pattern rather than a literal path.
GLOB_CHARS = frozenset("*?[")


class PatternKind(Enum):
    """The most general construct present in a pattern."""

    LITERAL = "literal"
    WILDCARD = "wildcard"
    CHAR_CLASS = "char_class"
    RECURSIVE = "recursive"


@dataclass(frozen=True)
class GlobPattern:
    """A compiled glob. Matches whole forward-slash paths."""

    text: str
    kind: PatternKind
    regex: re.Pattern[str]

    @property
    def is_recursive(self) -> bool:
        return self.kind is PatternKind.RECURSIVE

    def matches(self, path: str | Path) -> bool:
        if isinstance(path, Path):
            path = path.as_posix()
        return self.regex.fullmatch(path) is not None


def compile_glob(text: str) -> GlobPattern:
    """
    Compile `text` into a `GlobPattern`. Raises `InvalidPatternError` on an
    unterminated character class or an invalid range.
    """
    kinds: set[PatternKind] = set()
    pieces: list[str] = []
    segments = text.split("/")
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == "**":
            kinds.add(PatternKind.RECURSIVE)
            pieces.append(".*" if last else "(?:[^/]*/)*")
            continue
        pieces.append(_translate_segment(text, segment, kinds))
        if not last:
            pieces.append("/")

    try:
        regex = re.compile("".join(pieces), re.DOTALL)
    except re.error as e:
        raise InvalidPatternError(f"invalid glob pattern {text!r}: {e}") from e

    for kind in (PatternKind.RECURSIVE, PatternKind.CHAR_CLASS, PatternKind.WILDCARD):
        if kind in kinds:
            return GlobPattern(text, kind, regex)
    return GlobPattern(text, PatternKind.LITERAL, regex)


def _translate_segment(text: str, segment: str, kinds: set[PatternKind]) -> str:
    out: list[str] = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        if c == "\\":
            i += 1
            out.append(re.escape(segment[i]) if i < n else re.escape("\\"))
        elif c == "*":
            while i + 1 < n and segment[i + 1] == "*":
                i += 1
            kinds.add(PatternKind.WILDCARD)
            out.append("[^/]*")
        elif c == "?":
            kinds.add(PatternKind.WILDCARD)
            out.append("[^/]")
        elif c == "[":
            j = i + 1
            negate = j < n and segment[j] in "!^"
            if negate:
                j += 1
            start = j
            # A leading `]` is a literal member of the class.
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                raise InvalidPatternError(
                    f"invalid glob pattern {text!r}: unterminated character class"
                )
            members = re.sub(r"([\\\[\]^])", r"\\\1", segment[start:j])
            kinds.add(PatternKind.CHAR_CLASS)
            out.append(f"[^/{members}]" if negate else f"[{members}]")
            i = j
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def _unescape(segment: str) -> str:
    return re.sub(r"\\(.)", r"\1", segment)


def _fnmatch_segment(segment: str) -> str:
    """
    Rewrite one validated segment for `Path.glob`, which has no `\\` escapes:
    escaped metacharacters become one-member classes and `[^...]` becomes `[!...]`.
    """
    out: list[str] = []
    i, n = 0, len(segment)
    while i < n:
        c = segment[i]
        if c == "\\":
            i += 1
            literal = segment[i] if i < n else "\\"
            out.append(f"[{literal}]" if literal in GLOB_CHARS else literal)
        elif c == "[":
            j = i + 1
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            char_class = segment[i : j + 1]
            if char_class.startswith("[^"):
                char_class = "[!" + char_class[2:]
            out.append(char_class)
            i = j
        else:
            out.append(c)
        i += 1
    return "".join(out)


def has_magic(pattern: str) -> bool:
    """True if `pattern` has an unescaped glob construct."""
    return compile_glob(pattern).kind is not PatternKind.LITERAL


def expand_glob(pattern: str) -> list[Path]:
    """
    Return existing paths matching `pattern`, sorted. A pattern without glob
    characters resolves to itself (escapes removed) when it exists. Raises
    `InvalidPatternError` for invalid syntax.

    Matches come from `Path.glob` under the pattern's literal prefix and are then
    checked against the compiled pattern, so expansion agrees with `compile_glob`.
    """
    if not has_magic(pattern):
        p = Path(_unescape(pattern))
        return [p] if p.exists() else []

    # Determine the root for globbing
    parts = pattern.split("/")
    i = next(i for i, part in enumerate(parts) if has_magic(part))
    root_text = "/".join(_unescape(part) for part in parts[:i])
    if root_text:
        root = Path(root_text)
    else:
        root = Path("/") if i > 0 else Path(".")

    tail = parts[i:]
    tail_pattern = compile_glob("/".join(tail))
    glob_part = "/".join(_fnmatch_segment(part) for part in tail)

    try:
        return sorted(
            p for p in root.glob(glob_part) if tail_pattern.matches(p.relative_to(root))
        )
    except (ValueError, NotImplementedError) as e:
        raise InvalidPatternError(f"invalid glob pattern {pattern!r}: {e}") from e
