# posterhub/poster/errors.py
from __future__ import annotations


class PosterError(Exception):
    """Base class for all poster engine errors."""


class InvalidConfigurationError(PosterError, ValueError):
    """Unknown field, unknown aspect ratio or otherwise unusable config value."""


class MissingCredentialError(PosterError):
    """No API key configured for the background generation service."""


class GenerationFailedError(PosterError):
    """Background service returned an error."""


class EmptyResultError(GenerationFailedError):
    """Background service answered without an image payload."""


class ImageDecodeError(PosterError):
    """Logo / QR / background source could not be fetched or decoded."""
