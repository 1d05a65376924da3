"""
Mapping schema - canonical model and closed vocabulary.
"""

from .models import Info, Source, Target, Modifier, MapEntry, Table, MappingDefinition
from . import vocabulary

__all__ = [
    "Info",
    "Source",
    "Target",
    "Modifier",
    "MapEntry",
    "Table",
    "MappingDefinition",
    "vocabulary",
]
