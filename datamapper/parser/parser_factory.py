"""Factory for creating the parser of a mapping surface syntax."""
from typing import Any, Optional

from datamapper.exceptions import ParseError
from datamapper.parser.array_parser import ArrayMappingParser
from datamapper.parser.base_parser import MappingParser
from datamapper.parser.builder import ParsedMapping
from datamapper.parser.ini_parser import IniMappingParser
from datamapper.parser.xml_parser import XmlMappingParser


class MappingParserFactory:
    """Factory for creating mapping parsers."""

    # Map syntax hints and file extensions to parser types
    PARSERS = {
        'xml': 'xml',
        'array': 'array',
        'json': 'array',
        'ini': 'ini',
        'txt': 'ini',
    }

    @staticmethod
    def detect_syntax(content: Any) -> str:
        """
        Detect the surface syntax of mapping content.

        Args:
            content: Mapping text, bytes, or a dict/list

        Returns:
            str: 'xml', 'array' or 'ini'
        """
        if isinstance(content, (dict, list)):
            return 'array'
        if isinstance(content, bytes):
            content = content.decode('utf-8', errors='ignore')
        text = str(content).lstrip('\ufeff').lstrip()
        if text.startswith('<'):
            return 'xml'
        if text.startswith(('{', '[')) and not _is_ini_section(text):
            return 'array'
        return 'ini'

    @staticmethod
    def create_parser(syntax: str) -> MappingParser:
        """
        Create parser for a syntax hint.

        Args:
            syntax: 'xml', 'array' (or 'json'), 'ini'

        Returns:
            MappingParser: Appropriate parser instance

        Raises:
            ParseError: If the syntax is not supported
        """
        parser_type = MappingParserFactory.PARSERS.get(str(syntax).lower())
        if parser_type == 'xml':
            return XmlMappingParser()
        elif parser_type == 'array':
            return ArrayMappingParser()
        elif parser_type == 'ini':
            return IniMappingParser()

        raise ParseError(f"Unsupported mapping syntax: {syntax}")

    @staticmethod
    def parse(content: Any, syntax: Optional[str] = None) -> ParsedMapping:
        """
        Convenience method to parse mapping content in one call.

        Args:
            content: Mapping content
            syntax: Optional syntax hint; detected when omitted

        Returns:
            ParsedMapping: Parsed parts
        """
        if isinstance(content, str):
            content = content.lstrip('\ufeff')
        syntax = syntax or MappingParserFactory.detect_syntax(content)
        parser = MappingParserFactory.create_parser(syntax)
        return parser.parse(content)


def _is_ini_section(text: str) -> bool:
    """An ini file may start with a section header like [maps]."""
    first_line = text.split('\n', 1)[0].strip()
    return first_line.startswith('[') and first_line.endswith(']') and first_line[1:-1].strip().isalpha()
