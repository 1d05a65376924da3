"""Base querier - abstract interface shared by all path query languages."""
from abc import ABC, abstractmethod
from typing import Any, List, Optional
import logging

from lxml import etree

from datamapper.exceptions import QueryTypeMismatchError

logger = logging.getLogger(__name__)


def is_tree(node: Any) -> bool:
    """Check if a node is an XML tree or element."""
    return isinstance(node, (etree._Element, etree._ElementTree))


def as_list(result: Any) -> List[Any]:
    """Normalize a query result into a list of values, preserving order."""
    if result is None:
        return []
    if isinstance(result, (list, tuple)):
        return list(result)
    return [result]


def stringify(value: Any, as_xml: bool = False) -> Optional[str]:
    """
    Convert an extracted value into a string.

    Args:
        value: Scalar, XML node or container
        as_xml: Serialize XML elements as canonical XML instead of text

    Returns:
        Optional[str]: String value, or None for non-scalar values
    """
    if value is None:
        return None
    if isinstance(value, etree._ElementTree):
        value = value.getroot()
    if isinstance(value, etree._Element):
        if not isinstance(value.tag, str):
            # Comments and processing instructions
            return value.text or ""
        if as_xml:
            return etree.tostring(value, method="c14n").decode("utf-8")
        return str(value.xpath("string()"))
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (dict, list, tuple, set)):
        return None
    return str(value)


class Querier(ABC):
    """Abstract base class for path query languages."""

    name: str = ""

    def accepts(self, node: Any) -> bool:
        """Check if the querier can run against this node shape."""
        return not is_tree(node)

    def query(self, path: str, node: Any) -> List[Any]:
        """
        Evaluate a path against a node.

        Args:
            path: Expression in this query language
            node: Source node, never mutated

        Returns:
            List[Any]: Zero, one or many values in source order

        Raises:
            QueryTypeMismatchError: If the node shape is not accepted
            InvalidQueryExpressionError: If the path is malformed
        """
        if not self.accepts(node):
            raise QueryTypeMismatchError(
                f"Querier '{self.name}' cannot evaluate against {type(node).__name__}",
                querier=self.name,
                expression=path,
            )
        return self._query(path, node)

    @abstractmethod
    def _query(self, path: str, node: Any) -> List[Any]:
        """Evaluate path against an accepted node."""
        pass
