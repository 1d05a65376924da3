"""Mapping loading: reference resolution and normalization."""

from .normalizer import MappingNormalizer, normalize
from .resolver import MappingResolver, ResolvedReference

__all__ = ["MappingNormalizer", "MappingResolver", "ResolvedReference", "normalize"]
