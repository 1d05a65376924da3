"""
Mapping vocabulary - the closed element/attribute schema of mapping definitions.

One static table drives:
- XML mapping validation (elements, positions, attributes)
- Key validation of structured-literal mappings
- Editor hints exported by the `schema` command
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

ROOT_ELEMENT = "mapping"

# Fixed precedence: the first non-empty querier tag of a source wins.
QUERIERS: Tuple[str, ...] = ("jsdot", "jmespath", "jsonpath", "xpath", "index")

VISIBILITIES: Tuple[str, ...] = ("public", "private")


@dataclass(frozen=True)
class ElementSpec:
    """Definition of one element of the mapping vocabulary"""
    name: str
    attributes: Tuple[str, ...] = ()
    children: Tuple[str, ...] = ()
    has_text: bool = False
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation"""
        return {
            "name": self.name,
            "attributes": list(self.attributes),
            "children": list(self.children),
            "has_text": self.has_text,
            "description": self.description,
        }


ELEMENTS: Dict[str, ElementSpec] = {
    "mapping": ElementSpec(
        "mapping",
        children=("include", "info", "params", "param", "maps", "map", "tables", "table"),
        description="Root of a mapping definition",
    ),
    "include": ElementSpec("include", attributes=("mapping",), description="Splice another mapping here"),
    "info": ElementSpec(
        "info",
        children=("label", "from", "to", "querier", "mapper", "example"),
        description="Free-form metadata about the mapping",
    ),
    "params": ElementSpec("params", children=("param",), description="Constant variables"),
    "param": ElementSpec("param", attributes=("name",), has_text=True),
    "maps": ElementSpec("maps", children=("map",)),
    "map": ElementSpec("map", children=("from", "to", "mod"), description="One extraction rule"),
    "from": ElementSpec("from", attributes=QUERIERS, has_text=True, description="Source path by querier"),
    "to": ElementSpec(
        "to",
        attributes=("field", "datatype", "language", "visibility"),
        has_text=True,
        description="Target field",
    ),
    "mod": ElementSpec(
        "mod",
        attributes=("raw", "val", "pattern", "prepend", "append", "table"),
        description="Value modifiers",
    ),
    "tables": ElementSpec("tables", children=("table",)),
    "table": ElementSpec(
        "table",
        attributes=("name", "code", "lang"),
        children=("label", "entry", "list"),
        description="Code to label translation table",
    ),
    "entry": ElementSpec("entry", attributes=("key",), has_text=True),
    "label": ElementSpec("label", attributes=("lang",), has_text=True),
    "list": ElementSpec("list", children=("term",)),
    "term": ElementSpec("term", attributes=("code",), has_text=True),
    "querier": ElementSpec("querier", has_text=True, description="Default querier"),
    "mapper": ElementSpec("mapper", has_text=True, description="Base mapping reference"),
    "example": ElementSpec("example", has_text=True),
}

# Enumerated attribute values, used for validation and hints.
ATTRIBUTE_VALUES: Dict[Tuple[str, str], Tuple[str, ...]] = {
    ("to", "visibility"): VISIBILITIES,
}

# Structured-literal spellings that have no XML counterpart.
LITERAL_EXTRA_KEYS: Dict[str, Tuple[str, ...]] = {
    "from": ("path", "querier"),
    "table": ("label", "entries", "list"),
}


def get_element(name: str) -> Optional[ElementSpec]:
    """Get element definition by name."""
    return ELEMENTS.get(name)


def is_allowed_child(parent: str, child: str) -> bool:
    """Check if an element may appear directly inside another."""
    definition = ELEMENTS.get(parent)
    return definition is not None and child in definition.children


def allowed_attributes(name: str) -> Tuple[str, ...]:
    """Attributes accepted on an element."""
    definition = ELEMENTS.get(name)
    return definition.attributes if definition else ()


def literal_keys(name: str) -> Tuple[str, ...]:
    """Keys accepted for an element in the structured-literal syntax."""
    if name == ROOT_ELEMENT:
        return ("include", "info", "params", "default", "maps", "tables")
    definition = ELEMENTS[name]
    keys = definition.attributes or definition.children
    return tuple(keys) + LITERAL_EXTRA_KEYS.get(name, ())


def allowed_values(element: str, attribute: str) -> Optional[Tuple[str, ...]]:
    """Enumerated values of an attribute, or None when free text."""
    return ATTRIBUTE_VALUES.get((element, attribute))


def register_querier(tag: str) -> None:
    """Add a querier tag to the closed `from` attribute enumeration."""
    global QUERIERS
    if tag in QUERIERS:
        return
    QUERIERS = QUERIERS + (tag,)
    ELEMENTS["from"] = replace(ELEMENTS["from"], attributes=QUERIERS)


def queriers() -> Tuple[str, ...]:
    """Querier tags in precedence order."""
    return QUERIERS


def to_hints() -> Dict[str, Any]:
    """
    Export the vocabulary as editor autocompletion hints.

    Returns:
        Dict[str, Any]: "!top" lists root elements; each element maps to its
        attributes (with enumerated values when known) and children.
    """
    hints: Dict[str, Any] = {"!top": [ROOT_ELEMENT]}
    for name, definition in ELEMENTS.items():
        attrs: Dict[str, Optional[List[str]]] = {}
        for attribute in definition.attributes:
            values = allowed_values(name, attribute)
            attrs[attribute] = list(values) if values else None
        hints[name] = {"attrs": attrs, "children": list(definition.children)}
    return hints
