"""
errors.py

Exception hierarchy for textrankminer.

All errors derive from :class:`TextRankError`, which itself is a
``ValueError`` so callers that already guard keyword extraction with
``except ValueError`` keep working.
"""

from __future__ import annotations


class TextRankError(ValueError):
    """Base class for every error raised by textrankminer."""


class MalformedInputError(TextRankError):
    """
    The token stream or its annotations are structurally inconsistent.

    Raised for out-of-order tokens, impossible spans, POS data that is not a
    set of strings, dangling dependency references, or composite tag keys
    with more than one ``_`` language delimiter.
    """


class EmptyGraphError(TextRankError):
    """The co-occurrence graph of a document has no nodes, so nothing can be ranked."""


class InvalidConfigurationError(TextRankError):
    """A configuration value is out of range (iterations, damping, threshold, window...)."""
