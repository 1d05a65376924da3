"""JSONPath querier, with the extended syntax (filters, arithmetic)."""
from functools import lru_cache
from typing import Any, List

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from datamapper.exceptions import InvalidQueryExpressionError
from datamapper.query.base import Querier


@lru_cache(maxsize=256)
def compile_expression(path: str):
    """Parsed JSONPath expression, shared by every querier."""
    return parse_jsonpath(path)


class JsonpathQuerier(Querier):
    """Evaluates JSONPath expressions; matches are returned in document order."""

    name = "jsonpath"

    def _query(self, path: str, node: Any) -> List[Any]:
        try:
            expression = compile_expression(path)
        except JSONPathError as exc:
            raise InvalidQueryExpressionError(
                f"Invalid jsonpath expression '{path}': {exc}", querier=self.name, expression=path
            ) from exc

        values: List[Any] = []
        for match in expression.find(node):
            if isinstance(match.value, list):
                values.extend(match.value)
            else:
                values.append(match.value)
        return values
