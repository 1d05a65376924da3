"""Index querier - positional access into a row or list."""
from collections.abc import Mapping, Sequence
from typing import Any, List
import re

from datamapper.exceptions import InvalidQueryExpressionError
from datamapper.query.base import Querier, is_tree


class IndexQuerier(Querier):
    """Treats the node as an ordered sequence and selects by zero-based position."""

    name = "index"

    INDEX_PATTERN = re.compile(r"^\s*\d+\s*$")

    def accepts(self, node: Any) -> bool:
        if isinstance(node, (str, bytes)) or is_tree(node):
            return False
        return isinstance(node, (Sequence, Mapping))

    def _query(self, path: str, node: Any) -> List[Any]:
        if path is None or not self.INDEX_PATTERN.match(str(path)):
            raise InvalidQueryExpressionError(
                f"Index must be a non-negative integer, got '{path}'", querier=self.name, expression=path
            )
        position = int(path)
        values = list(node.values()) if isinstance(node, Mapping) else node
        if position >= len(values):
            return []
        value = values[position]
        return [] if value is None else [value]
