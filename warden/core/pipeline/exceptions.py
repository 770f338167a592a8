"""Build-time errors raised while assembling a security pipeline."""

from __future__ import annotations


class ConfigurationError(Exception):
    """A required collaborator or setting is missing, or the build sequence was violated."""


class DuplicateSharedObjectError(ConfigurationError):
    """Two modules tried to publish the same capability in one build session."""


__all__ = ["ConfigurationError", "DuplicateSharedObjectError"]
