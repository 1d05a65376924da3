"""
XML mapping parser.

Supports:
- Closed vocabulary validation (elements, positions, attributes, values)
- Maps at root level or grouped in <maps>
- <include mapping="..."/> at any position among maps
- Tables with <entry key> and <list><term code> forms
"""

from typing import Dict, Iterator, Optional
import logging

from lxml import etree

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
from datamapper.schema import vocabulary
from datamapper.schema.models import Source, Table, Target

logger = logging.getLogger(__name__)


def _children(element: etree._Element) -> Iterator[etree._Element]:
    """Child elements, skipping comments and processing instructions."""
    for child in element:
        if isinstance(child.tag, str):
            yield child


def _name(element: etree._Element) -> str:
    return etree.QName(element).localname


def _text(element: etree._Element) -> str:
    return (element.text or "").strip()


class XmlMappingParser(MappingParser):
    """Parser for the nested-element mapping syntax."""

    syntax = "xml"

    def parse(self, content) -> ParsedMapping:
        """
        Parse an XML mapping.

        Args:
            content: XML text or bytes

        Returns:
            ParsedMapping: Parsed parts

        Raises:
            ParseError: On XML syntax errors or vocabulary violations
        """
        root = self._load(content)
        self._validate(root)

        builder = MappingBuilder()
        for child in _children(root):
            name = _name(child)
            if name == "include":
                builder.add_include(child.get("mapping"), child.sourceline)
            elif name == "info":
                for element in _children(child):
                    builder.set_info(_name(element), _text(element), element.sourceline)
            elif name == "params":
                for element in _children(child):
                    builder.add_param(element.get("name"), _text(element), element.sourceline)
            elif name == "param":
                builder.add_param(child.get("name"), _text(child), child.sourceline)
            elif name == "maps":
                for element in _children(child):
                    self._add_map(builder, element)
            elif name == "map":
                self._add_map(builder, child)
            elif name == "tables":
                for element in _children(child):
                    builder.add_table(self._table(element))
            elif name == "table":
                builder.add_table(self._table(child))

        parsed = builder.result()
        logger.debug(f"Parsed xml mapping: {len(parsed.entries)} maps, {len(parsed.tables)} tables")
        return parsed

    @staticmethod
    def _load(content) -> etree._Element:
        if isinstance(content, str):
            content = content.encode("utf-8")
        parser = etree.XMLParser(
            resolve_entities=False, no_network=True, remove_comments=True, remove_pis=True
        )
        try:
            return etree.fromstring(content, parser=parser)
        except etree.XMLSyntaxError as exc:
            raise ParseError(f"Invalid xml mapping: {exc}", line=exc.lineno) from exc

    def _validate(self, root: etree._Element) -> None:
        """Check every element and attribute against the vocabulary."""
        if _name(root) != vocabulary.ROOT_ELEMENT:
            raise ParseError(
                f"Root element must be <{vocabulary.ROOT_ELEMENT}>, got <{_name(root)}>", line=root.sourceline
            )
        counter = {"maps": 0}
        self._validate_element(root, None, None, counter)

    def _validate_element(
        self,
        element: etree._Element,
        parent: Optional[str],
        position: Optional[int],
        counter: Dict[str, int],
    ) -> None:
        name = _name(element)
        line = element.sourceline

        if vocabulary.get_element(name) is None:
            raise ParseError(f"Unknown element <{name}>", position, line)
        if parent is not None and not vocabulary.is_allowed_child(parent, name):
            raise ParseError(f"Element <{name}> is not allowed inside <{parent}>", position, line)

        if name == "map":
            position = counter["maps"]
            counter["maps"] += 1

        allowed = vocabulary.allowed_attributes(name)
        for attribute, value in element.attrib.items():
            attribute = etree.QName(attribute).localname
            if attribute not in allowed:
                raise ParseError(f"Unknown attribute '{attribute}' on <{name}>", position, line)
            values = vocabulary.allowed_values(name, attribute)
            if values and value.strip().lower() not in values:
                raise ParseError(
                    f"Invalid value '{value}' for {name}/@{attribute}, expected one of {', '.join(values)}",
                    position,
                    line,
                )

        for child in _children(element):
            self._validate_element(child, name, position, counter)

    @staticmethod
    def _add_map(builder: MappingBuilder, element: etree._Element) -> None:
        source = Source()
        target = Target()
        modifier = None
        position = builder.map_count

        for child in _children(element):
            name = _name(child)
            if name == "from":
                source = source_from_tags(dict(child.attrib))
                if source.is_empty and _text(child):
                    source = Source(path=_text(child))
            elif name == "to":
                if child.get("field") is None and _text(child):
                    target = parse_field_spec(_text(child), position, child.sourceline)
                else:
                    target = Target(
                        field=clean(child.get("field")),
                        datatypes=split_datatypes(child.get("datatype")),
                        language=clean(child.get("language")),
                        is_public=parse_visibility(child.get("visibility"), position, child.sourceline),
                    )
            elif name == "mod":
                modifier = make_modifier(
                    raw=child.get("raw"),
                    val=child.get("val"),
                    pattern=child.get("pattern"),
                    prepend=child.get("prepend"),
                    append=child.get("append"),
                    table=child.get("table"),
                )

        builder.add_map(source, target, modifier, element.sourceline)

    @staticmethod
    def _table(element: etree._Element) -> Table:
        name = clean(element.get("name")) or clean(element.get("code"))
        if name is None:
            raise ParseError("Table without name or code", line=element.sourceline)

        labels: Dict[str, str] = {}
        entries: Dict[str, str] = {}
        for child in _children(element):
            child_name = _name(child)
            if child_name == "label":
                labels[clean(child.get("lang")) or ""] = _text(child)
            elif child_name == "entry":
                key = child.get("key")
                if key is None:
                    raise ParseError(f"Entry without key in table '{name}'", line=child.sourceline)
                entries[key] = _text(child)
            elif child_name == "list":
                for term in _children(child):
                    code = term.get("code")
                    if code is None:
                        raise ParseError(f"Term without code in table '{name}'", line=term.sourceline)
                    entries[code] = _text(term)

        return Table(
            name=name,
            code=clean(element.get("code")),
            lang=clean(element.get("lang")),
            labels=labels,
            entries=entries,
        )
