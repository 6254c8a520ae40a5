"""Exceptions raised by the parameter-model compiler."""

from __future__ import annotations


class InvalidDescriptorError(ValueError):
    """Raised when an input document does not describe a valid type or operation."""


class MissingNameError(ValueError):
    """Raised when a parameter or field that must be named has no name."""


class InvalidConfigError(ValueError):
    """Raised when generator configuration values are invalid."""


class MalformedVariantError(TypeError):
    """Raised when a parameter node carries a composite kind without the matching variant data."""


class UnsupportedKindError(ValueError):
    """Raised when a renderer meets a parameter kind it has no widget for."""
