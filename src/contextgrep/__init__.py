from contextgrep.file_resolver import FilterConfig, TreeWalker
from contextgrep.output import write_output
from contextgrep.templates import DEFAULT_TEMPLATE, format_file, load_template

__all__ = [
    "DEFAULT_TEMPLATE",
    "FilterConfig",
    "TreeWalker",
    "format_file",
    "load_template",
    "write_output",
]
