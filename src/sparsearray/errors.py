"""Exceptions raised by sparsearray."""

from __future__ import annotations


class SparseArrayError(Exception):
    """Base error for the sparsearray library."""


class InvalidArgumentError(SparseArrayError, ValueError):
    """Raised when a caller passes an argument outside the accepted contract."""


class SourceError(SparseArrayError):
    """Raised when a page source fails to produce a length or a page."""
