"""Code table lookup for value translation."""
from typing import Dict, Iterable, Optional, Protocol, Union
import logging

from datamapper.schema.models import Table, select_table

logger = logging.getLogger(__name__)


class TableLookup(Protocol):
    """Anything able to translate a code of a named table."""

    def lookup(self, table_name: str, code: str, lang: Optional[str] = None) -> Optional[str]:
        ...


class DictTableLookup:
    """External tables given as plain dicts: {table_name: {code: label}}."""

    def __init__(self, tables: Dict[str, Dict[str, str]]):
        """Initialize lookup."""
        self.tables = tables

    def lookup(self, table_name: str, code: str, lang: Optional[str] = None) -> Optional[str]:
        return self.tables.get(table_name, {}).get(code)


class TableRegistry:
    """
    Tables of a mapping definition, with an optional external fallback.

    Lookups return None on a miss; callers pass the code through.
    """

    def __init__(
        self,
        tables: Iterable[Table] = (),
        external: Optional[Union[TableLookup, Dict[str, Dict[str, str]]]] = None,
    ):
        """
        Initialize registry

        Args:
            tables: Tables of the mapping definition
            external: External lookup, or a dict of dicts, queried on a miss
        """
        self.tables = list(tables)
        if isinstance(external, dict):
            external = DictTableLookup(external)
        self.external = external

    def find(self, table_name: str, lang: Optional[str] = None) -> Optional[Table]:
        """Find a table by name (or code), preferring the requested language."""
        return select_table(self.tables, table_name, lang=lang)

    def lookup(self, table_name: str, code: str, lang: Optional[str] = None) -> Optional[str]:
        """Translate a code; None when neither the mapping nor the fallback knows it."""
        table = self.find(table_name, lang)
        if table is not None and table.has_key(code):
            return table.entries[str(code)]
        if self.external is not None:
            return self.external.lookup(table_name, code, lang)
        if table is None:
            logger.debug(f"Table not found: {table_name}")
        return None
