"""Exceptions raised by contextgrep."""

from __future__ import annotations


class ContextgrepError(Exception):
    """Base class for all contextgrep errors."""


class InvalidPatternError(ContextgrepError, ValueError):
    """Raised when a glob pattern has invalid syntax."""


class ConfigError(ContextgrepError):
    """Raised when a config file cannot be parsed."""


class TemplateError(ContextgrepError):
    """Raised when an output template cannot be loaded."""


class OutputError(ContextgrepError):
    """Raised when the output file cannot be written."""
