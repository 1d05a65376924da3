"""
Field builder - runs one map entry against a source document.

Query failures are local to the entry: they are logged and recorded as a
skipped entry so the remaining entries still run.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
import logging

from datamapper.builder.results import EntryResult, FieldAssignment
from datamapper.exceptions import DataMapperError, PatternResolutionWarning, QueryError
from datamapper.query.base import is_tree, stringify
from datamapper.query.registry import QuerierRegistry, default_registry
from datamapper.schema.models import MapEntry
from datamapper.transformer.tables import TableRegistry
from datamapper.transformer.value_transform import ValueTransformer

logger = logging.getLogger(__name__)

FIELDS_PATH_PREFIX = "fields[]."


def build_fields_index(document: Any, params: Mapping[str, Any]) -> Optional[Dict[str, List[Any]]]:
    """
    Index a list of field records by field name.

    `fields` names the key (dot path) holding the records, e.g. the CONTENTdm
    `fields` list of {"key": "title", "label": "Title", "value": "..."}.
    With `fields.key`, each record is filed under its key value; with only
    `fields.value`, all values are collected under that name; otherwise each
    record is filed under its own position or key.

    Args:
        document: Parsed source document
        params: Variable scope holding `fields`, `fields.key`, `fields.value`

    Returns:
        Optional[Dict[str, List[Any]]]: Values by field name, None when not configured
    """
    fields_key = params.get("fields")
    if not fields_key or not isinstance(document, dict):
        return None

    records: Any = document
    for part in str(fields_key).split("."):
        records = records.get(part) if isinstance(records, dict) else None
    if isinstance(records, dict):
        records = records.items()
    elif isinstance(records, list):
        records = enumerate(records)
    else:
        return {}

    key_name = params.get("fields.key")
    value_name = params.get("fields.value")
    index: Dict[str, List[Any]] = {}
    for position, record in records:
        if not isinstance(record, dict):
            continue
        if key_name:
            if record.get(key_name) is None or record.get(value_name or "value") is None:
                continue
            name, value = str(record[key_name]), record[value_name or "value"]
        elif value_name:
            if record.get(value_name) is None:
                continue
            name, value = str(value_name), record[value_name]
        else:
            name, value = str(position), list(record.values())
        values = index.setdefault(name, [])
        if isinstance(value, list):
            values.extend(value)
        else:
            values.append(value)
    return index


@dataclass
class ConversionContext:
    """Per-conversion state shared by every entry."""

    document: Any
    variables: Mapping[str, Any] = field(default_factory=dict)
    tables: TableRegistry = field(default_factory=TableRegistry)
    default_querier: str = "jsdot"
    fields: Optional[Mapping[str, List[Any]]] = None  # see build_fields_index


class FieldBuilder:
    """Builds the field assignments of a map entry."""

    def __init__(
        self,
        queriers: Optional[QuerierRegistry] = None,
        transformer: Optional[ValueTransformer] = None,
    ):
        """
        Initialize FieldBuilder

        Args:
            queriers: Querier registry (default: shared built-in registry)
            transformer: Value transformer
        """
        self.queriers = queriers or default_registry()
        self.transformer = transformer or ValueTransformer()

    def build(self, entry: MapEntry, context: ConversionContext) -> EntryResult:
        """
        Run one entry: extract, transform, emit.

        Args:
            entry: Map entry
            context: Conversion context

        Returns:
            EntryResult: Emitted values, or skipped with a reason
        """
        warnings: List[PatternResolutionWarning] = []
        try:
            raw_values = self._extract(entry, context)
            values = self.transformer.transform(
                raw_values,
                entry.modifier,
                variables=context.variables,
                tables=context.tables,
                lang=entry.target.language,
                resolve_path=self._path_resolver(entry, context),
                as_xml="xml" in entry.target.datatypes,
                warnings=warnings,
            )
        except QueryError as exc:
            logger.warning(f"Map #{entry.index} ({entry.target.field}) skipped: {exc}")
            return EntryResult.skipped(entry.index, str(exc), warnings)
        except DataMapperError:
            raise
        except Exception as e:
            logger.error(f"Map #{entry.index} ({entry.target.field}) failed: {e}")
            return EntryResult.skipped(entry.index, f"{type(e).__name__}: {e}", warnings)

        if not values:
            logger.debug(f"Map #{entry.index} ({entry.target.field}): no value")
            return EntryResult.skipped(entry.index, "empty", warnings)

        target = entry.target
        assignments = [
            FieldAssignment(
                field=target.field,
                datatype=target.datatype,
                language=target.language,
                visibility=target.visibility,
                value=value,
            )
            for value in values
        ]
        return EntryResult.emitted(entry.index, assignments, warnings)

    def _extract(self, entry: MapEntry, context: ConversionContext) -> List[Any]:
        if entry.has_raw:
            return []

        source = entry.source
        if source.is_empty:
            value = context.variables.get("value")
            if value is not None and value != "":
                return [value]
            if entry.modifier is not None and entry.modifier.pattern:
                # Computed field: the pattern runs once
                return [None]
            return []

        querier = source.querier or context.default_querier
        fields = self._field_values(querier, source.path, context)
        if fields is not None:
            return fields
        return self.queriers.evaluate(querier, source.path, context.document)

    def _path_resolver(self, entry: MapEntry, context: ConversionContext):
        """Placeholders are queried relative to the current node, else to the document."""
        querier = entry.source.querier or context.default_querier

        def resolve(path: str, current: Any) -> Optional[str]:
            if is_tree(current):
                node, language = current, "xpath"
            else:
                node = context.document
                language = "xpath" if is_tree(node) else querier
            fields = self._field_values(language, path, context)
            if fields is not None:
                values = fields
            else:
                try:
                    values = self.queriers.evaluate(language, path, node)
                except QueryError as exc:
                    logger.debug(f"Placeholder '{path}' not queryable: {exc}")
                    return None
            for value in values:
                text = stringify(value)
                if text is not None:
                    return text
            return None

        return resolve

    @staticmethod
    def _field_values(querier: str, path: str, context: ConversionContext) -> Optional[List[Any]]:
        """Values of a `fields[].name` path, or None for any other path."""
        if querier != "jsdot" or context.fields is None or not path.startswith(FIELDS_PATH_PREFIX):
            return None
        return list(context.fields.get(path[len(FIELDS_PATH_PREFIX):], []))
