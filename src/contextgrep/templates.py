"""
Output templates: discovery and placeholder substitution.

A template is plain text with `{placeholder}` fields:

- `{content}`: the file's text
- `{path}`: path relative to the working directory, forward slashes
- `{abspath}`: absolute path, forward slashes
- `{basename}`: final path component
- `{filename}`: basename without its extension
- `{extension}`: extension without the leading dot

Substitution is a single pass, so placeholders that appear inside file content are
left untouched. Unknown `{...}` fields are emitted as-is.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from contextgrep.errors import TemplateError

DEFAULT_TEMPLATE = (
    "=== File Start: {path} ===\n"
    "```{extension}\n"
    "{content}\n"
    "```\n"
    "=== File End: {path} ===\n\n"
)

TEMPLATE_FILENAME = ".contextgrep.template.txt"

_PLACEHOLDER_RE = re.compile(r"\{(content|path|abspath|basename|filename|extension)\}")


def template_search_path(cwd: Path | None = None, home: Path | None = None) -> list[Path]:
    """Template files in precedence order."""
    cwd = cwd or Path.cwd()
    home = home or Path.home()
    return [
        cwd / TEMPLATE_FILENAME,
        home / TEMPLATE_FILENAME,
        home / ".config" / "contextgrep" / "template.txt",
    ]


def load_template(
    cli_template: str | None = None,
    template_file: str | Path | None = None,
    cwd: Path | None = None,
    home: Path | None = None,
) -> str:
    """
    Pick the template to use. Precedence: `cli_template` > `template_file` >
    `./.contextgrep.template.txt` > `~/.contextgrep.template.txt` >
    `~/.config/contextgrep/template.txt` > `DEFAULT_TEMPLATE`.

    Raises `TemplateError` only if an explicitly given `template_file` can't be read;
    discovered files that can't be read are skipped.
    """
    if cli_template:
        return cli_template

    if template_file is not None:
        try:
            return Path(template_file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateError(f"could not read template file {template_file}: {e}") from e

    for candidate in template_search_path(cwd, home):
        try:
            return candidate.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue

    return DEFAULT_TEMPLATE


def template_fields(path: Path, content: str, cwd: Path | None = None) -> dict[str, str]:
    rel_path = Path(os.path.relpath(path, cwd or Path.cwd())).as_posix()
    abs_path = Path(os.path.abspath(path)).as_posix()
    basename = path.name
    # A leading dot counts as an extension separator (`.gitignore` -> `gitignore`).
    dot = basename.rfind(".")
    if dot >= 0:
        filename, extension = basename[:dot], basename[dot + 1 :]
    else:
        filename, extension = basename, ""
    return {
        "content": content,
        "path": rel_path,
        "abspath": abs_path,
        "basename": basename,
        "filename": filename,
        "extension": extension,
    }


def render(template: str, fields: dict[str, str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda m: fields[m.group(1)], template)


def format_file(path: Path, template: str, cwd: Path | None = None) -> str:
    """
    Read `path` and render it through `template`. Bytes that aren't valid UTF-8 are
    replaced. Raises `OSError` if the file can't be read.
    """
    content = path.read_bytes().decode("utf-8", errors="replace")
    return render(template, template_fields(path, content, cwd))
