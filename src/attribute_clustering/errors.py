"""
Exceptions raised by the attribute clustering engine.

Both types subclass the builtin exceptions the clustering code has always
raised (ValueError for bad input, RuntimeError for internal failures), so
callers that already catch those keep working.
"""

__all__ = ["ConfigurationError", "ResolutionError"]


class ConfigurationError(ValueError):
    """Invalid grouping parameters, reported before any computation starts."""


class ResolutionError(RuntimeError):
    """
    The parent forest contains a cycle.

    Representatives always point to a lower or equal index, so a cycle means the
    linkage sequence itself is corrupt.
    """
