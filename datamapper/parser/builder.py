"""
Mapping builder - collects parsed parts into the canonical model.

Every surface-syntax parser feeds the same builder, so validation rules
(target required, known queriers, visibility values) live in one place.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from datamapper.exceptions import ParseError
from datamapper.schema import vocabulary
from datamapper.schema.models import Info, MapEntry, Modifier, Source, Table, Target

logger = logging.getLogger(__name__)

INFO_FIELDS = {
    "label": "label",
    "from": "source_kind",
    "to": "target_kind",
    "querier": "querier",
    "mapper": "mapper",
    "example": "example",
}


@dataclass(frozen=True)
class IncludeDirective:
    """Reference to another mapping, spliced at its position."""

    reference: str
    line: Optional[int] = None


@dataclass
class ParsedMapping:
    """Output of a surface-syntax parser, before include resolution."""

    info: Info = field(default_factory=Info)
    params: Dict[str, str] = field(default_factory=dict)
    items: List[Union[MapEntry, IncludeDirective]] = field(default_factory=list)
    tables: List[Table] = field(default_factory=list)

    @property
    def entries(self) -> List[MapEntry]:
        return [item for item in self.items if isinstance(item, MapEntry)]

    @property
    def includes(self) -> List[IncludeDirective]:
        return [item for item in self.items if isinstance(item, IncludeDirective)]


def clean(value: Any) -> Optional[str]:
    """Strip a value; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def unquote(value: str) -> str:
    """Remove one pair of surrounding quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def is_quoted(value: str) -> bool:
    value = value.strip()
    return len(value) >= 2 and value[0] == value[-1] and value[0] in "'\""


def parse_visibility(value: Any, position: Optional[int] = None, line: Optional[int] = None) -> Optional[bool]:
    """Convert "public"/"private" into is_public."""
    text = clean(value)
    if text is None:
        return None
    text = text.lower()
    if text not in vocabulary.VISIBILITIES:
        raise ParseError(f"Invalid visibility '{value}', expected public or private", position, line)
    return text == "public"


def split_datatypes(value: Any) -> Tuple[str, ...]:
    """Datatypes may be a whitespace-separated string or a list; duplicates are dropped."""
    if value is None:
        return ()
    items = value.split() if isinstance(value, str) else [str(v) for v in value]
    datatypes: List[str] = []
    for item in items:
        item = item.strip()
        if item and item not in datatypes:
            datatypes.append(item)
    return tuple(datatypes)


def parse_field_spec(spec: str, position: Optional[int] = None, line: Optional[int] = None) -> Target:
    """
    Parse a compact field spec.

    Format: "dcterms:title ^^datatype @language §visibility"

    Args:
        spec: Field specification
        position: Map index, for error messages
        line: Source line, for error messages

    Returns:
        Target: Parsed target (field None when the field text is empty)
    """
    field_name = None
    datatypes: List[str] = []
    language = None
    is_public = None

    for part in (spec or "").split():
        if part.startswith("^^"):
            if part[2:] and part[2:] not in datatypes:
                datatypes.append(part[2:])
        elif part.startswith("@"):
            language = part[1:] or None
        elif part.startswith("§"):
            is_public = parse_visibility(part[1:], position, line)
        elif field_name is None:
            field_name = part

    return Target(field=field_name, datatypes=tuple(datatypes), language=language, is_public=is_public)


def source_from_tags(values: Dict[str, Any]) -> Source:
    """Pick the first non-empty querier tag, in precedence order."""
    for querier in vocabulary.queriers():
        path = values.get(querier)
        if path is not None and str(path).strip() != "":
            return Source(querier=querier, path=str(path).strip())
    return Source()


def make_modifier(**values) -> Optional[Modifier]:
    """Build a modifier; None when every part is empty."""
    cleaned = {}
    for key, value in values.items():
        if value is None:
            cleaned[key] = None
        elif key in ("prepend", "append", "raw", "val"):
            # Keep inner spaces of literals such as "Title: "
            cleaned[key] = str(value) if str(value) != "" else None
        else:
            cleaned[key] = clean(value)
    modifier = Modifier(**cleaned)
    return None if modifier.is_empty else modifier


class MappingBuilder:
    """Accumulates info, params, maps, includes and tables in order."""

    def __init__(self):
        """Initialize builder."""
        self.info: Dict[str, Optional[str]] = {}
        self.params: Dict[str, str] = {}
        self.items: List[Union[MapEntry, IncludeDirective]] = []
        self.tables: List[Table] = []
        self.map_count = 0

    def set_info(self, key: str, value: Any, line: Optional[int] = None) -> None:
        """Set one info field (label, from, to, querier, mapper, example)."""
        if key not in INFO_FIELDS:
            raise ParseError(f"Unknown info field '{key}'", line=line)
        value = clean(value)
        if key == "querier" and value and value not in vocabulary.queriers():
            raise ParseError(f"Unknown default querier '{value}'", line=line)
        self.info[INFO_FIELDS[key]] = value

    def add_param(self, name: Any, value: Any, line: Optional[int] = None) -> None:
        name = clean(name)
        if name is None:
            raise ParseError("Param without name", line=line)
        self.params[name] = "" if value is None else str(value).strip()

    def add_include(self, reference: Any, line: Optional[int] = None) -> None:
        reference = clean(reference)
        if reference is None:
            raise ParseError("Include without mapping reference", line=line)
        self.items.append(IncludeDirective(reference, line))

    def add_table(self, table: Table) -> None:
        self.tables.append(table)

    def add_map(
        self,
        source: Optional[Source],
        target: Optional[Target],
        modifier: Optional[Modifier] = None,
        line: Optional[int] = None,
    ) -> MapEntry:
        """
        Validate and append one map.

        Raises:
            ParseError: If the map has neither source nor target, a source or
                modifier without target field, or an unknown querier
        """
        position = self.map_count
        source = source or Source()
        target = target or Target()

        if source.is_empty and not target.field and modifier is None:
            raise ParseError("map has neither 'from' nor 'to'", position, line)
        if not target.field:
            raise ParseError("map has no target field ('to/@field')", position, line)
        if source.querier is not None and source.querier not in vocabulary.queriers():
            raise ParseError(f"unknown querier '{source.querier}'", position, line)

        entry = MapEntry(source=source, target=target, modifier=modifier, index=position)
        self.items.append(entry)
        self.map_count += 1
        return entry

    def result(self) -> ParsedMapping:
        """Return the parsed mapping."""
        return ParsedMapping(
            info=Info(**self.info),
            params=dict(self.params),
            items=list(self.items),
            tables=list(self.tables),
        )
