"""
Value Transform - applies map modifiers to extracted values.

Order of operations (fixed):
1. raw: returned verbatim, extracted values are ignored
2. table: each value translated through its code table (pass-through on miss)
3. pattern: placeholders and filter expressions substituted
4. val: replaces each non-empty value; nothing is emitted without one
5. prepend/append: only around a non-empty value, and never with val
"""

from typing import Any, Callable, Dict, List, Optional
import logging

from datamapper.exceptions import PatternResolutionWarning
from datamapper.query.base import stringify
from datamapper.schema.models import Modifier
from datamapper.transformer.filters import FilterRegistry
from datamapper.transformer.pattern import TemplateEngine

logger = logging.getLogger(__name__)

# (placeholder path, current raw value) -> first matching string or None
SourceResolver = Callable[[str, Any], Optional[str]]


class ValueTransformer:
    """Transforms raw values according to a modifier"""

    def __init__(self, filters: Optional[FilterRegistry] = None):
        """
        Initialize ValueTransformer

        Args:
            filters: Filter registry shared by pattern expressions
        """
        self.filters = filters or FilterRegistry()

    def transform(
        self,
        raw_values: List[Any],
        modifier: Optional[Modifier],
        variables: Optional[Dict[str, Any]] = None,
        tables=None,
        lang: Optional[str] = None,
        resolve_path: Optional[SourceResolver] = None,
        as_xml: bool = False,
        warnings: Optional[List[PatternResolutionWarning]] = None,
    ) -> List[str]:
        """
        Transform raw values into output strings.

        Args:
            raw_values: Extracted values; None stands for "no value" (computed fields)
            modifier: Map modifier, may be None
            variables: Read-only variable scope
            tables: Table lookup (TableRegistry or compatible)
            lang: Target language, used to pick tables
            resolve_path: Callback resolving source paths used as placeholders
            as_xml: Serialize XML nodes instead of taking their text
            warnings: List collecting unresolved placeholder warnings

        Returns:
            List[str]: One non-empty string per produced value, in input order
        """
        modifier = modifier or Modifier()
        variables = variables or {}

        if modifier.raw:
            return [modifier.raw]

        results: List[str] = []
        for raw in raw_values:
            text = self._to_string(raw, as_xml)
            if text is None:
                continue

            context: Dict[str, Any] = {}
            if raw is not None:
                context["value"] = text

            if modifier.table and text:
                text = self._translate(modifier.table, text, tables, lang)
                context.update(key=context["value"], label=text, value=text)

            if modifier.pattern:
                engine = TemplateEngine(
                    context=context,
                    variables=variables,
                    filters=self.filters,
                    tables=tables,
                    resolve_path=self._bind(resolve_path, raw),
                    lang=lang,
                )
                text = engine.evaluate(modifier.pattern)
                if warnings is not None:
                    warnings.extend(engine.warnings)

            if not text:
                continue

            if modifier.val:
                results.append(modifier.val)
                continue
            results.append(f"{modifier.prepend or ''}{text}{modifier.append or ''}")

        return results

    @staticmethod
    def _to_string(raw: Any, as_xml: bool) -> Optional[str]:
        if raw is None:
            return ""
        text = stringify(raw, as_xml=as_xml)
        if text is None:
            logger.debug(f"Skipping non-scalar value of type {type(raw).__name__}")
        return text

    @staticmethod
    def _translate(table_name: str, code: str, tables, lang: Optional[str]) -> str:
        if tables is None:
            return code
        label = tables.lookup(table_name, code, lang)
        return code if label is None else label

    @staticmethod
    def _bind(resolve_path: Optional[SourceResolver], raw: Any):
        if resolve_path is None:
            return None
        return lambda path: resolve_path(path, raw)


def transform(
    raw_values: List[Any],
    modifier: Optional[Modifier],
    variables: Optional[Dict[str, Any]] = None,
    tables=None,
    **options,
) -> List[str]:
    """Transform raw values with a default ValueTransformer."""
    return ValueTransformer().transform(raw_values, modifier, variables, tables, **options)
