"""JMESPath querier."""
from functools import lru_cache
from typing import Any, List

import jmespath
from jmespath.exceptions import JMESPathError

from datamapper.exceptions import InvalidQueryExpressionError
from datamapper.query.base import Querier, as_list


@lru_cache(maxsize=256)
def compile_expression(path: str):
    """Compiled JMESPath expression, shared by every querier."""
    return jmespath.compile(path)


class JmespathQuerier(Querier):
    """Evaluates JMESPath expressions with compiled-expression caching."""

    name = "jmespath"

    def _query(self, path: str, node: Any) -> List[Any]:
        try:
            result = compile_expression(path).search(node)
        except JMESPathError as exc:
            raise InvalidQueryExpressionError(
                f"Invalid jmespath expression '{path}': {exc}", querier=self.name, expression=path
            ) from exc
        return as_list(result)
