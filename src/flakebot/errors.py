"""Exceptions raised by flakebot."""


class FlakebotError(Exception):
    """Base class for all flakebot errors."""

    pass


class ResolutionError(FlakebotError):
    """Raised when the Go packages of a repository cannot be listed."""

    pass


class PackageNotFoundError(FlakebotError):
    """Raised when an import path is not part of the resolved packages."""

    pass


class ParseError(FlakebotError):
    """Raised when a Go source file cannot be parsed."""

    pass


class RenderError(FlakebotError):
    """Raised when edited Go source cannot be rendered back to valid text."""

    pass


class WriteError(FlakebotError):
    """Raised when modified source code cannot be written to disk."""

    pass


class GitError(FlakebotError):
    """Raised when a git operation fails."""

    pass
