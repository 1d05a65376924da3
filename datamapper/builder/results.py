"""Conversion results: field assignments and per-entry outcomes."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import re

from datamapper.exceptions import PatternResolutionWarning

URI_PATTERN = re.compile(r"^(https?|ftp|urn):", re.IGNORECASE)


@dataclass(frozen=True)
class FieldAssignment:
    """One output value for one target field."""

    field: str
    datatype: Optional[str] = None
    language: Optional[str] = None
    visibility: Optional[str] = None
    value: str = ""

    def as_tuple(self) -> Tuple[str, Optional[str], Optional[str], Optional[str], str]:
        return (self.field, self.datatype, self.language, self.visibility, self.value)

    @property
    def is_uri(self) -> bool:
        if self.datatype:
            return self.datatype == "uri"
        return bool(URI_PATTERN.match(self.value))

    def to_value(self) -> Dict[str, Any]:
        """
        Convert to a typed value.

        URIs become {"type": "uri", "@id": ...}; anything else keeps its
        datatype (default "literal") with an "@value".
        """
        if self.is_uri:
            data: Dict[str, Any] = {"type": "uri", "@id": self.value}
        else:
            data = {"type": self.datatype or "literal", "@value": self.value}
            if self.language:
                data["@language"] = self.language
        if self.visibility is not None:
            data["is_public"] = self.visibility == "public"
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "field": self.field,
            "datatype": self.datatype,
            "language": self.language,
            "visibility": self.visibility,
            "value": self.value,
        }


class EntryStatus(Enum):
    EMITTED = "emitted"
    SKIPPED = "skipped"


@dataclass
class EntryResult:
    """Outcome of one map entry."""

    index: int
    status: EntryStatus
    values: List[FieldAssignment] = field(default_factory=list)
    reason: Optional[str] = None
    warnings: List[PatternResolutionWarning] = field(default_factory=list)

    @classmethod
    def emitted(cls, index: int, values: List[FieldAssignment], warnings=None) -> "EntryResult":
        return cls(index, EntryStatus.EMITTED, list(values), warnings=list(warnings or []))

    @classmethod
    def skipped(cls, index: int, reason: str, warnings=None) -> "EntryResult":
        return cls(index, EntryStatus.SKIPPED, reason=reason, warnings=list(warnings or []))

    @property
    def is_emitted(self) -> bool:
        return self.status == EntryStatus.EMITTED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "index": self.index,
            "status": self.status.value,
            "values": [value.to_dict() for value in self.values],
            "reason": self.reason,
            "warnings": [str(warning) for warning in self.warnings],
        }


@dataclass
class ConversionResult:
    """Ordered field assignments of one conversion, with per-entry outcomes."""

    fields: List[FieldAssignment] = field(default_factory=list)
    entries: List[EntryResult] = field(default_factory=list)

    def add(self, entry: EntryResult) -> None:
        self.entries.append(entry)
        self.fields.extend(entry.values)

    def as_tuples(self) -> List[Tuple[str, Optional[str], Optional[str], Optional[str], str]]:
        return [assignment.as_tuple() for assignment in self.fields]

    def to_resource(self) -> Dict[str, List[Dict[str, Any]]]:
        """Group typed values by field, keeping first-seen field order."""
        resource: Dict[str, List[Dict[str, Any]]] = {}
        for assignment in self.fields:
            resource.setdefault(assignment.field, []).append(assignment.to_value())
        return resource

    @property
    def emitted_count(self) -> int:
        return sum(1 for entry in self.entries if entry.is_emitted)

    @property
    def skipped(self) -> List[EntryResult]:
        return [entry for entry in self.entries if not entry.is_emitted]

    @property
    def warnings(self) -> List[PatternResolutionWarning]:
        return [warning for entry in self.entries for warning in entry.warnings]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "fields": [assignment.to_dict() for assignment in self.fields],
            "entries": [entry.to_dict() for entry in self.entries],
        }
