"""
Key normalization utilities.

These modules turn free-text identifiers from different registries into
canonical keys used to recognise the same package.
"""

from .names import normalize_name, normalize_repository

__all__ = [
    'normalize_name',
    'normalize_repository',
]
