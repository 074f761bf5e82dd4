"""Exceptions raised by the deep-copy generator.

Every failure is fatal for the whole run: a run either produces one complete
output covering every requested type, or nothing.
"""

from __future__ import annotations


class DeepCopyGenError(Exception):
    """Base class for all generator errors."""


class ConfigError(DeepCopyGenError):
    """Required arguments are missing or invalid."""


class LoadError(DeepCopyGenError):
    """The package could not be read, parsed or resolved."""


class ResolutionError(DeepCopyGenError):
    """A requested type cannot be generated for."""


class TypeNotFoundError(ResolutionError):
    """No top-level type with the requested name exists in the package."""

    def __init__(self, package: str, name: str) -> None:
        super().__init__(f"type not found: {package}.{name}")
        self.package = package
        self.name = name


class FormattingError(DeepCopyGenError):
    """The assembled output is not valid source.

    The unformatted text is kept on ``source`` for diagnosis.
    """

    def __init__(self, message: str, source: str) -> None:
        super().__init__(message)
        self.source = source


class OutputError(DeepCopyGenError):
    """The destination cannot be created or written."""
