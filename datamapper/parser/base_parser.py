"""Abstract base class for mapping surface-syntax parsers."""
from abc import ABC, abstractmethod
from typing import Any

from datamapper.parser.builder import ParsedMapping


class MappingParser(ABC):
    """Abstract base class for mapping parsers."""

    syntax: str = ""

    @abstractmethod
    def parse(self, content: Any) -> ParsedMapping:
        """
        Parse mapping content into its canonical parts.

        Args:
            content: Raw mapping text (or a dict/list for the array syntax)

        Returns:
            ParsedMapping: Info, params, ordered maps/includes and tables

        Raises:
            ParseError: If the content is malformed or violates the vocabulary
        """
        pass
