# dumbbell_reporter/core/errors.py
from __future__ import annotations


class DumbbellError(Exception):
    """Base class for every failure raised by the pipeline stages."""


class SourceUnavailable(DumbbellError):
    """The data source could not be read (network or file system)."""


class ParseError(DumbbellError):
    """The source was read but is not a usable CSV table."""


class InvalidSchema(DumbbellError):
    """Required columns are missing or the category columns are misnamed."""


class InsufficientData(DumbbellError):
    """A category group has too few rows for a sample standard deviation."""


class InconsistentCategory(DumbbellError):
    """A chart record references a category with no statistics."""


class ConfigError(DumbbellError, ValueError):
    """The run configuration is unreadable or holds an invalid setting."""
