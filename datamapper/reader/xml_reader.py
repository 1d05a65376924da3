"""XML source reader."""
from typing import Optional

from lxml import etree

from datamapper.exceptions import SourceReadError
from datamapper.reader.base_reader import Content, SourceReader


class XmlReader(SourceReader):
    """Read XML documents into lxml elements."""

    format = "xml"

    def __init__(self, huge_tree: bool = False):
        """
        Initialize XmlReader

        Args:
            huge_tree: Lift lxml limits for very deep or large documents
        """
        self.huge_tree = huge_tree

    def read(self, content: Content) -> etree._Element:
        if isinstance(content, str):
            content = content.encode("utf-8")
        parser = etree.XMLParser(
            resolve_entities=False, no_network=True, remove_blank_text=True, huge_tree=self.huge_tree
        )
        try:
            root: Optional[etree._Element] = etree.fromstring(content.lstrip(), parser)
        except etree.XMLSyntaxError as exc:
            raise SourceReadError(f"Invalid XML source: {exc}") from exc
        if root is None:
            raise SourceReadError("Empty XML source")
        return root
