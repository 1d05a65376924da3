"""
datamapper - declarative mapping engine.

Extracts values from structured sources (nested dicts/lists, rows, XML
trees), transforms them, and assembles ordered target-field assignments,
following mapping definitions written in xml, array/JSON or ini syntax.
"""

__version__ = "0.1.0"

from datamapper.builder import ConversionResult, FieldAssignment, MappingConverter, convert, convert_value
from datamapper.mapper import MappingNormalizer, MappingResolver, normalize
from datamapper.query import QuerierRegistry, evaluate
from datamapper.schema import MappingDefinition
from datamapper.transformer import transform

__all__ = [
    "ConversionResult",
    "FieldAssignment",
    "MappingConverter",
    "MappingDefinition",
    "MappingNormalizer",
    "MappingResolver",
    "QuerierRegistry",
    "convert",
    "convert_value",
    "evaluate",
    "normalize",
    "transform",
    "__version__",
]
