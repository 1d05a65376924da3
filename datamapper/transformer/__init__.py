"""
Value Transform - modifiers, patterns, filters and code tables.
"""

from .filters import FilterRegistry
from .pattern import TemplateEngine
from .tables import TableRegistry, TableLookup, DictTableLookup
from .value_transform import ValueTransformer, transform

__all__ = [
    "FilterRegistry",
    "TemplateEngine",
    "TableRegistry",
    "TableLookup",
    "DictTableLookup",
    "ValueTransformer",
    "transform",
]
