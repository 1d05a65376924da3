"""
Path Query - query languages to locate values in source data.

Supports:
- jsdot: dot paths in nested dicts/lists
- jmespath: JMESPath expressions
- jsonpath: JSONPath expressions (extended syntax)
- xpath: XPath 1.0 on XML trees
- index: positional access into rows
"""

from .base import Querier, is_tree, stringify
from .registry import QuerierRegistry, default_registry, evaluate

__all__ = [
    "Querier",
    "QuerierRegistry",
    "default_registry",
    "evaluate",
    "is_tree",
    "stringify",
]
