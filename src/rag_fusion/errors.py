"""Exception hierarchy for the retrieval-fusion engine.

The fusion and chunking functions are total over their inputs; only
malformed configuration and failing upstream collaborators surface here.
"""
from __future__ import annotations


class RagFusionError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(RagFusionError, ValueError):
    """A setting or per-call option is outside its valid range."""


class UpstreamError(RagFusionError, RuntimeError):
    """A vector index, keyword index or content lookup call failed."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"{collaborator} failed: {message}")
        self.collaborator = collaborator
