"""Canonical mapping model shared by every surface syntax."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


def frozen_mapping(value: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """Read-only copy of a mapping."""
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class Info:
    """Free-form metadata about a mapping."""

    label: Optional[str] = None
    source_kind: Optional[str] = None  # "from": json, xml, csv...
    target_kind: Optional[str] = None  # "to"
    querier: Optional[str] = None  # default querier of the maps
    mapper: Optional[str] = None  # base mapping reference
    example: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "label": self.label,
            "from": self.source_kind,
            "to": self.target_kind,
            "querier": self.querier,
            "mapper": self.mapper,
            "example": self.example,
        }


@dataclass(frozen=True)
class Source:
    """Where to find a value: one querier tag and its path."""

    querier: Optional[str] = None
    path: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """Check if the source has no path"""
        return self.path is None or self.path == ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {"querier": self.querier, "path": self.path}


@dataclass(frozen=True)
class Target:
    """Where to put a value."""

    field: Optional[str] = None
    datatypes: Tuple[str, ...] = ()
    language: Optional[str] = None
    is_public: Optional[bool] = None

    @property
    def datatype(self) -> Optional[str]:
        """First declared datatype"""
        return self.datatypes[0] if self.datatypes else None

    @property
    def visibility(self) -> Optional[str]:
        """Visibility flag as "public"/"private", or None when unset"""
        if self.is_public is None:
            return None
        return "public" if self.is_public else "private"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "field": self.field,
            "datatype": list(self.datatypes),
            "language": self.language,
            "is_public": self.is_public,
        }


@dataclass(frozen=True)
class Modifier:
    """Value modifiers. Empty strings are stored as None."""

    raw: Optional[str] = None
    val: Optional[str] = None  # emitted instead of each non-empty value
    pattern: Optional[str] = None
    prepend: Optional[str] = None
    append: Optional[str] = None
    table: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.raw or self.val or self.pattern or self.prepend or self.append or self.table)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "raw": self.raw,
            "val": self.val,
            "pattern": self.pattern,
            "prepend": self.prepend,
            "append": self.append,
            "table": self.table,
        }


@dataclass(frozen=True)
class MapEntry:
    """One from -> to (+ mod) rule."""

    source: Source = field(default_factory=Source)
    target: Target = field(default_factory=Target)
    modifier: Optional[Modifier] = None
    index: int = 0  # position in the normalized maps

    @property
    def has_raw(self) -> bool:
        return self.modifier is not None and bool(self.modifier.raw)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "index": self.index,
            "from": self.source.to_dict(),
            "to": self.target.to_dict(),
            "mod": self.modifier.to_dict() if self.modifier else None,
        }


@dataclass(frozen=True)
class Table:
    """Code to label translation table."""

    name: str
    code: Optional[str] = None
    lang: Optional[str] = None
    labels: Mapping[str, str] = field(default_factory=dict, hash=False)  # lang ("" if untagged) -> label
    entries: Mapping[str, str] = field(default_factory=dict, hash=False)  # key -> label

    def __post_init__(self):
        object.__setattr__(self, "labels", frozen_mapping(self.labels))
        object.__setattr__(self, "entries", frozen_mapping(self.entries))

    def lookup(self, code: Any) -> str:
        """
        Translate a code into its label.

        Matching is exact and case-sensitive. An unknown code is returned
        unchanged, so the lookup always yields a value.
        """
        key = "" if code is None else str(code)
        return self.entries.get(key, key)

    def has_key(self, code: Any) -> bool:
        return str(code) in self.entries

    def label(self, lang: Optional[str] = None) -> Optional[str]:
        """Display name of the table, in the requested language if available."""
        if lang and lang in self.labels:
            return self.labels[lang]
        if "" in self.labels:
            return self.labels[""]
        return next(iter(self.labels.values()), None)

    def matches(self, name: str, code: Optional[str] = None) -> bool:
        if name not in (self.name, self.code):
            return False
        return code is None or code == self.code

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "name": self.name,
            "code": self.code,
            "lang": self.lang,
            "labels": dict(self.labels),
            "entries": dict(self.entries),
        }


def select_table(
    tables: Iterable[Table], name: str, code: Optional[str] = None, lang: Optional[str] = None
) -> Optional[Table]:
    """Pick a table by name (or code), preferring `lang`, then untagged tables."""
    candidates = [t for t in tables if t.matches(name, code)]
    if not candidates:
        return None
    if lang:
        for table in candidates:
            if table.lang == lang:
                return table
    for table in candidates:
        if table.lang is None:
            return table
    return candidates[0]


@dataclass(frozen=True)
class MappingDefinition:
    """Normalized mapping: metadata, ordered map entries and tables."""

    name: Optional[str] = None
    info: Info = field(default_factory=Info)
    params: Mapping[str, str] = field(default_factory=dict, hash=False)
    entries: Tuple[MapEntry, ...] = ()
    tables: Tuple[Table, ...] = ()
    includes: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "params", frozen_mapping(self.params))

    @property
    def is_empty(self) -> bool:
        """A mapping without entries is valid but converts to nothing"""
        return not self.entries

    @property
    def table_names(self) -> List[str]:
        names = []
        for table in self.tables:
            if table.name not in names:
                names.append(table.name)
        return names

    def get_table(self, name: str, code: Optional[str] = None, lang: Optional[str] = None) -> Optional[Table]:
        """
        Locate a table among the candidates sharing a name.

        Args:
            name: Table name (or code when the table has no name)
            code: Optional code discriminator
            lang: Preferred language; untagged tables are the fallback

        Returns:
            Optional[Table]: Best matching table or None
        """
        return select_table(self.tables, name, code, lang)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "name": self.name,
            "info": self.info.to_dict(),
            "params": dict(self.params),
            "maps": [entry.to_dict() for entry in self.entries],
            "tables": [table.to_dict() for table in self.tables],
            "includes": list(self.includes),
        }
