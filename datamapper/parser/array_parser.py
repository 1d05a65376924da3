"""
Structured-literal mapping parser (dicts and lists, or the same as JSON text).

Supports:
- {"info": {...}, "params": {...}, "maps": [...], "tables": {...}}
- Maps as dicts ({from, to, mod}), ini-style strings or {"include": ref}
- "include" (string or list) spliced before the maps; "default" maps first
- A bare list of field specs (spreadsheet headers), addressed by column index
"""

from typing import Any, Dict, List, Optional
import json
import logging

from datamapper.exceptions import ParseError
from datamapper.parser.base_parser import MappingParser
from datamapper.parser.builder import (
    MappingBuilder,
    ParsedMapping,
    clean,
    make_modifier,
    parse_field_spec,
    parse_visibility,
    source_from_tags,
    split_datatypes,
)
from datamapper.parser.ini_parser import parse_map_parts, split_map_line
from datamapper.schema import vocabulary
from datamapper.schema.models import Modifier, Source, Table, Target

logger = logging.getLogger(__name__)


def _check_keys(element: str, data: Dict[str, Any], position: Optional[int] = None) -> None:
    """Reject keys outside the vocabulary of an element."""
    allowed = vocabulary.literal_keys(element)
    for key in data:
        if key not in allowed:
            raise ParseError(
                f"Unknown key '{key}' in '{element}', expected one of: {', '.join(allowed)}", position
            )


class ArrayMappingParser(MappingParser):
    """Parser for mappings given as Python structures or JSON text."""

    syntax = "array"

    def parse(self, content: Any) -> ParsedMapping:
        """
        Parse a structured-literal mapping.

        Args:
            content: Dict, list, or JSON text of one of them

        Returns:
            ParsedMapping: Parsed parts

        Raises:
            ParseError: On invalid JSON, unknown keys or invalid maps
        """
        data = self._load(content)
        if isinstance(data, list):
            return self._parse_header_list(data)
        if not isinstance(data, dict):
            raise ParseError(f"Mapping must be an object or a list, got {type(data).__name__}")

        _check_keys("mapping", data)
        builder = MappingBuilder()

        info = data.get("info") or {}
        if not isinstance(info, dict):
            raise ParseError("'info' must be an object")
        _check_keys("info", info)
        for key, value in info.items():
            builder.set_info(key, value)

        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ParseError("'params' must be an object")
        for name, value in params.items():
            builder.add_param(name, value)

        includes = data.get("include") or []
        if isinstance(includes, str):
            includes = [includes]
        for reference in includes:
            builder.add_include(reference)

        for section in ("default", "maps"):
            maps = data.get(section) or []
            if not isinstance(maps, list):
                raise ParseError(f"'{section}' must be a list")
            for item in maps:
                self._add_item(builder, item)

        for table in self._tables(data.get("tables")):
            builder.add_table(table)

        return builder.result()

    @staticmethod
    def _load(content: Any) -> Any:
        if isinstance(content, bytes):
            content = content.decode("utf-8")
        if isinstance(content, str):
            try:
                return json.loads(content)
            except json.JSONDecodeError as exc:
                raise ParseError(f"Invalid json mapping: {exc.msg}", line=exc.lineno) from exc
        return content

    def _parse_header_list(self, headers: List[Any]) -> ParsedMapping:
        """One map per non-empty header, sourced by column index."""
        builder = MappingBuilder()
        builder.set_info("querier", "index")
        for column, header in enumerate(headers):
            if isinstance(header, dict):
                self._add_item(builder, header, default_source=Source("index", str(column)))
                continue
            header = clean(header)
            if header is None:
                continue
            if "=" in header or "~" in header:
                self._add_string_map(builder, header)
                continue
            target = parse_field_spec(header, builder.map_count)
            builder.add_map(Source("index", str(column)), target)
        return builder.result()

    def _add_item(self, builder: MappingBuilder, item: Any, default_source: Optional[Source] = None) -> None:
        position = builder.map_count
        if isinstance(item, str):
            self._add_string_map(builder, item)
            return
        if not isinstance(item, dict):
            raise ParseError(f"map must be an object or a string, got {type(item).__name__}", position)
        if "include" in item:
            if len(item) != 1:
                raise ParseError("an include item cannot have other keys", position)
            builder.add_include(item["include"])
            return

        _check_keys("map", item, position)
        source = self._source(item.get("from"), position)
        if source.is_empty and default_source is not None:
            source = default_source
        target = self._target(item.get("to"), position)
        modifier = self._modifier(item.get("mod"), position)
        builder.add_map(source, target, modifier)

    @staticmethod
    def _add_string_map(builder: MappingBuilder, text: str) -> None:
        position = builder.map_count
        parts = split_map_line(text)
        if parts is None:
            raise ParseError(f"Expected 'source = target' map string: {text}", position)
        source, target, modifier = parse_map_parts(parts[0], parts[1], position)
        builder.add_map(source, target, modifier)

    @staticmethod
    def _source(value: Any, position: int) -> Source:
        if value is None:
            return Source()
        if isinstance(value, (str, int)):
            path = clean(value)
            return Source(path=path) if path is not None else Source()
        if not isinstance(value, dict):
            raise ParseError("'from' must be a string or an object", position)
        _check_keys("from", value, position)
        if clean(value.get("path")) is not None:
            return Source(querier=clean(value.get("querier")), path=clean(value.get("path")))
        return source_from_tags(value)

    @staticmethod
    def _target(value: Any, position: int) -> Target:
        if value is None:
            return Target()
        if isinstance(value, str):
            return parse_field_spec(value, position)
        if not isinstance(value, dict):
            raise ParseError("'to' must be a string or an object", position)
        _check_keys("to", value, position)
        return Target(
            field=clean(value.get("field")),
            datatypes=split_datatypes(value.get("datatype")),
            language=clean(value.get("language")),
            is_public=parse_visibility(value.get("visibility"), position),
        )

    @staticmethod
    def _modifier(value: Any, position: int) -> Optional[Modifier]:
        if value is None:
            return None
        if isinstance(value, str):
            return make_modifier(pattern=value)
        if not isinstance(value, dict):
            raise ParseError("'mod' must be a string or an object", position)
        _check_keys("mod", value, position)
        return make_modifier(
            raw=value.get("raw"),
            val=value.get("val"),
            pattern=value.get("pattern"),
            prepend=value.get("prepend"),
            append=value.get("append"),
            table=value.get("table"),
        )

    def _tables(self, value: Any) -> List[Table]:
        if not value:
            return []
        if isinstance(value, list):
            tables = []
            for item in value:
                if not isinstance(item, dict):
                    raise ParseError("Each table must be an object")
                name = clean(item.get("name")) or clean(item.get("code"))
                if name is None:
                    raise ParseError("Table without name or code")
                tables.append(self._table(name, item))
            return tables
        if isinstance(value, dict):
            return [self._table(str(name), spec) for name, spec in value.items()]
        raise ParseError("'tables' must be an object or a list")

    @staticmethod
    def _table(name: str, spec: Any) -> Table:
        if not isinstance(spec, dict):
            raise ParseError(f"Table '{name}' must be an object")

        structured = ("entries", "list", "label", "code", "lang", "name")
        if not any(key in spec for key in structured):
            # Plain {code: label}
            return Table(name=name, entries={str(k): str(v) for k, v in spec.items()})

        _check_keys("table", spec)
        entries: Dict[str, str] = {}
        for key in ("entries", "list"):
            part = spec.get(key) or {}
            if not isinstance(part, dict):
                raise ParseError(f"Table '{name}': '{key}' must be an object")
            entries.update({str(k): str(v) for k, v in part.items()})

        label = spec.get("label")
        if isinstance(label, dict):
            labels = {str(k): str(v) for k, v in label.items()}
        elif label is not None:
            labels = {"": str(label)}
        else:
            labels = {}

        return Table(
            name=name,
            code=clean(spec.get("code")),
            lang=clean(spec.get("lang")),
            labels=labels,
            entries=entries,
        )
