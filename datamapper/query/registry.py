"""Querier registry."""
from typing import Any, Dict, List, Optional
import logging

from datamapper.exceptions import InvalidQueryExpressionError
from datamapper.query.base import Querier
from datamapper.query.index import IndexQuerier
from datamapper.query.jmespath_querier import JmespathQuerier
from datamapper.query.jsdot import JsdotQuerier
from datamapper.query.jsonpath_querier import JsonpathQuerier
from datamapper.query.xpath import XpathQuerier
from datamapper.schema import vocabulary

logger = logging.getLogger(__name__)


class QuerierRegistry:
    """Registry of available query languages, one strategy per tag."""

    def __init__(self, namespaces: Optional[Dict[str, str]] = None):
        """Initialize registry with the built-in queriers."""
        self.queriers: Dict[str, Querier] = {
            "jsdot": JsdotQuerier(),
            "jmespath": JmespathQuerier(),
            "jsonpath": JsonpathQuerier(),
            "xpath": XpathQuerier(namespaces),
            "index": IndexQuerier(),
        }

    def register(self, tag: str, querier: Querier) -> None:
        """
        Register or replace a querier.

        A new tag is also added to the `from` attribute vocabulary, so
        mappings can use it.
        """
        self.queriers[tag] = querier
        vocabulary.register_querier(tag)
        logger.debug(f"Registered querier '{tag}' ({type(querier).__name__})")

    def get(self, tag: str) -> Querier:
        """Get querier by tag."""
        querier = self.queriers.get(tag)
        if querier is None:
            raise InvalidQueryExpressionError(f"Unknown querier '{tag}'", querier=tag)
        return querier

    def evaluate(self, tag: str, path: str, node: Any) -> List[Any]:
        """Evaluate a path with the querier registered under tag."""
        values = self.get(tag).query(path, node)
        logger.debug(f"{tag} '{path}' -> {len(values)} value(s)")
        return values

    @property
    def names(self) -> List[str]:
        return list(self.queriers.keys())


_default_registry = QuerierRegistry()


def default_registry() -> QuerierRegistry:
    """Shared registry with the built-in queriers."""
    return _default_registry


def evaluate(query_language: str, path: str, node: Any) -> List[Any]:
    """
    Evaluate one path expression against one node.

    Args:
        query_language: Querier tag (jsdot, jmespath, jsonpath, xpath, index)
        path: Expression in that language
        node: Source node (dict/list, or lxml element for xpath)

    Returns:
        List[Any]: Values in source order; empty when nothing matches

    Raises:
        QueryTypeMismatchError: If the node shape is not accepted
        InvalidQueryExpressionError: If the expression or querier is invalid
    """
    return default_registry().evaluate(query_language, path, node)
