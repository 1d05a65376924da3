"""
Ini mapping parser (flat key-path syntax).

Format:

    ; comment
    [info]
    querier = jsdot
    [maps]
    title = dcterms:title @en
    creator.name = dcterms:creator ^^literal §private ~ By {value}
    dcterms:license = "Public domain"
    dc:rights = dcterms:accessRights = "Restricted"
    ~ = dcterms:spatial ~ {lat}/{lng}
    [tables]
    status.1 = Active

Maps of [default] come before maps of [maps].
"""

from typing import Dict, List, Optional, Tuple
import logging
import re

from datamapper.exceptions import ParseError
from datamapper.parser.base_parser import MappingParser
from datamapper.parser.builder import (
    MappingBuilder,
    ParsedMapping,
    is_quoted,
    make_modifier,
    parse_field_spec,
    unquote,
)
from datamapper.schema.models import Modifier, Source, Table, Target

logger = logging.getLogger(__name__)

FIELD_SPEC_RE = re.compile(r"^[^\s\"'\[\]()/=~]+(?:\s+(?:\^\^|@|§)\S*)*$")


def split_map_line(line: str) -> Optional[Tuple[str, str]]:
    """
    Split a map line into its source and target parts.

    The separator is the last "=" before the pattern ("~") or, without
    pattern, before a trailing quoted literal. A leading "~" means no source.
    """
    line = line.strip()
    if line.startswith("~"):
        rest = line[1:].lstrip()
        if not rest.startswith("="):
            return None
        return "", rest[1:].strip()

    tilde = line.find("~")
    head = line if tilde < 0 else line[:tilde]
    if tilde < 0 and head[-1:] in ("'", '"'):
        opening = head.rfind(head[-1], 0, len(head) - 1)
        if opening > 0:
            head = head[:opening]
    separator = head.rfind("=")
    if separator < 0:
        return None
    return line[:separator].strip(), line[separator + 1:].strip()


def parse_map_parts(
    source_part: str, target_part: str, position: Optional[int] = None, line: Optional[int] = None
) -> Tuple[Source, Target, Optional[Modifier]]:
    """Convert the two sides of a map line into source, target and modifier."""
    if is_quoted(target_part):
        path, separator, field_part = source_part.rpartition("=")
        if separator and path.strip() and FIELD_SPEC_RE.match(field_part.strip()):
            # `path = field = "literal"`: the literal replaces each value found
            target = parse_field_spec(field_part.strip(), position, line)
            return Source(path=path.strip()), target, make_modifier(val=unquote(target_part))
        # `field = "literal"`: the left side is the target
        target = parse_field_spec(source_part, position, line)
        return Source(), target, make_modifier(raw=unquote(target_part))

    source = Source() if source_part in ("", "~") else Source(path=source_part)

    pattern = None
    tilde = target_part.find("~")
    if tilde >= 0:
        pattern = unquote(target_part[tilde + 1:].strip())
        target_part = target_part[:tilde]

    target = parse_field_spec(target_part.strip(), position, line)
    return source, target, make_modifier(pattern=pattern)


class IniMappingParser(MappingParser):
    """Parser for the ini-like mapping syntax."""

    syntax = "ini"

    SECTIONS = ("info", "params", "default", "maps", "tables")
    COMMENT_PREFIXES = (";", "#")

    def parse(self, content) -> ParsedMapping:
        """
        Parse an ini mapping.

        Args:
            content: Ini text

        Returns:
            ParsedMapping: Parsed parts

        Raises:
            ParseError: If a map line cannot be split or a field spec is invalid
        """
        if isinstance(content, bytes):
            content = content.decode("utf-8")

        builder = MappingBuilder()
        maps: Dict[str, List[Tuple[int, str]]] = {"default": [], "maps": []}
        tables: Dict[str, Dict[str, str]] = {}
        section = None

        for line_number, raw_line in enumerate(content.splitlines(), 1):
            line = raw_line.strip()
            if not line or line.startswith(self.COMMENT_PREFIXES):
                continue

            if line.startswith("[") and line.endswith("]"):
                section = line[1:-1].strip().lower()
                if section not in self.SECTIONS:
                    logger.warning(f"Ignoring unknown ini section [{section}] (line {line_number})")
                    section = None
                continue

            if section is None:
                continue

            if section in ("default", "maps"):
                maps[section].append((line_number, line))
                continue

            key, separator, value = line.partition("=")
            if not separator:
                raise ParseError(f"Expected 'key = value' in [{section}]: {line}", line=line_number)
            key = key.strip()
            value = unquote(value.strip())

            if section == "info":
                builder.set_info(key, value, line_number)
            elif section == "params":
                builder.add_param(key, value, line_number)
            elif section == "tables":
                name, dot, code = key.partition(".")
                if not dot or not name or not code:
                    raise ParseError(f"Expected 'table.code = label' in [tables]: {line}", line=line_number)
                tables.setdefault(name, {})[code] = value

        for line_number, line in maps["default"] + maps["maps"]:
            self._add_map(builder, line, line_number)

        for name, entries in tables.items():
            builder.add_table(Table(name=name, entries=entries))

        return builder.result()

    @staticmethod
    def _add_map(builder: MappingBuilder, line: str, line_number: int) -> None:
        position = builder.map_count
        parts = split_map_line(line)
        if parts is None:
            raise ParseError(f"Expected 'source = target' map line: {line}", position, line_number)
        source, target, modifier = parse_map_parts(parts[0], parts[1], position, line_number)
        builder.add_map(source, target, modifier, line_number)
