"""Conversion pipeline: entries of a mapping applied to a source document."""

from .converter import MappingConverter, convert, convert_value
from .field_builder import ConversionContext, FieldBuilder
from .results import ConversionResult, EntryResult, EntryStatus, FieldAssignment

__all__ = [
    "ConversionContext",
    "ConversionResult",
    "EntryResult",
    "EntryStatus",
    "FieldAssignment",
    "FieldBuilder",
    "MappingConverter",
    "convert",
    "convert_value",
]
