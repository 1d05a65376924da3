"""
Mapping parsers - one independent parser per surface syntax.

Supports:
- xml: nested-element markup with a closed vocabulary
- array: dicts/lists or JSON text, including header lists
- ini: flat key-path lines with field specs
"""

from .builder import IncludeDirective, MappingBuilder, ParsedMapping, parse_field_spec
from .parser_factory import MappingParserFactory

__all__ = [
    "IncludeDirective",
    "MappingBuilder",
    "MappingParserFactory",
    "ParsedMapping",
    "parse_field_spec",
]
