"""
Template Engine - Evaluates mapping patterns into strings

Supports:
- Placeholders ({value}, {variable}, {source/path})
- Filter expressions ({{ value|trim|upper }}, {{ value|table('name') }})
- Quoted literals and source paths as expression heads ({{ '{title}'|upper }})
- Single-pass substitution: inserted text is never re-scanned
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging
import re

from datamapper.exceptions import PatternResolutionWarning
from datamapper.transformer.filters import FilterRegistry, to_text

logger = logging.getLogger(__name__)

PathResolver = Callable[[str], Optional[str]]


@dataclass
class RenderResult:
    """Outcome of one pattern rendering"""
    text: str
    placeholders: int = 0
    resolved: int = 0
    unresolved: List[str] = field(default_factory=list)


class TemplateEngine:
    """Pattern engine for mapping modifiers"""

    # {{ expression }} or {name}, in one pass
    EXPRESSION_PATTERN = re.compile(r"\{\{\s*(?P<expr>.+?)\s*\}\}|\{(?P<name>[\w@/.$*][^{}]*)\}")

    # Filter call: name(args)
    FILTER_PATTERN = re.compile(r"^\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*(?:\((?P<args>.*)\))?\s*$", re.S)

    # Filter arguments: quoted strings, numbers, inline dicts or variable names
    ARG_PATTERN = re.compile(
        r"\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)'|(?P<num>[+-]?(?:\d*\.)?\d+)"
        r"|(?P<dict>\{[^{}]*\})|(?P<var>[A-Za-z_][\w.:]*))\s*,?"
    )

    def __init__(
        self,
        context: Optional[Dict[str, Any]] = None,
        variables: Optional[Dict[str, Any]] = None,
        filters: Optional[FilterRegistry] = None,
        tables=None,
        resolve_path: Optional[PathResolver] = None,
        lang: Optional[str] = None,
    ):
        """
        Initialize TemplateEngine

        Args:
            context: Local names (value, key, label), checked first
            variables: Pipeline variables, checked second
            filters: Filter registry for {{ }} expressions
            tables: Table lookup used by the `table` filter
            resolve_path: Callback querying the source for path placeholders
            lang: Language passed to table lookups
        """
        self.context = context or {}
        self.variables = variables or {}
        self.filters = filters or FilterRegistry()
        self.tables = tables
        self.resolve_path = resolve_path
        self.lang = lang
        self.warnings: List[PatternResolutionWarning] = []

    def evaluate(self, pattern: str) -> str:
        """
        Evaluate a pattern string

        A pattern whose placeholders all resolved empty yields "", so static
        text alone never becomes a value.

        Args:
            pattern: Pattern (e.g., "Mr. {value}")

        Returns:
            str: Rendered text
        """
        result = self.render(pattern)
        if result.placeholders and not result.resolved:
            return ""
        return result.text

    def render(self, pattern: str) -> RenderResult:
        """Substitute every placeholder and expression of a pattern"""
        result = RenderResult(text="")

        def replace(match):
            result.placeholders += 1
            if match.group("expr") is not None:
                value = self._evaluate_expression(match.group("expr"))
                token = match.group(0)
            else:
                value = self.resolve_name(match.group("name"))
                token = match.group("name")

            if value is None or value == "":
                result.unresolved.append(token)
                self._warn(token, pattern)
                return ""

            result.resolved += 1
            return value

        result.text = self.EXPRESSION_PATTERN.sub(replace, pattern)
        return result

    def resolve_name(self, name: str) -> Optional[str]:
        """Resolve a name against local context, variables, then the source"""
        name = name.strip()
        if name in self.context and self.context[name] is not None:
            return to_text(self.context[name])
        if name in self.variables and self.variables[name] is not None:
            return to_text(self.variables[name])
        if self.resolve_path is not None:
            return self.resolve_path(name)
        return None

    def _evaluate_expression(self, expression: str) -> Optional[str]:
        """Evaluate `head|filter(args)|...`"""
        parts = self._split_filters(expression)
        value: Any = self._evaluate_head(parts[0])

        for part in parts[1:]:
            match = self.FILTER_PATTERN.match(part)
            if match and self.filters.has(match.group("name")):
                args = self._parse_args(match.group("args") or "")
                value = self.filters.apply(
                    value, match.group("name"), args, tables=self.tables, lang=self.lang
                )
                continue
            # Not a filter: the part is a name to resolve instead.
            resolved = self.resolve_name(part)
            if resolved is not None:
                value = resolved

        if value is None:
            return None
        return to_text(value)

    def _evaluate_head(self, head: str) -> Optional[Any]:
        head = head.strip()
        if len(head) >= 2 and head[0] == head[-1] and head[0] in "'\"":
            return self.EXPRESSION_PATTERN.sub(self._substitute_name, head[1:-1])
        if head.startswith("{") and head.endswith("}"):
            return self.resolve_name(head[1:-1])
        return self.resolve_name(head)

    def _substitute_name(self, match) -> str:
        if match.group("name") is None:
            return ""
        return self.resolve_name(match.group("name")) or ""

    def _parse_args(self, args: str) -> List[Any]:
        """Parse filter arguments into strings, dicts or variable values"""
        parsed: List[Any] = []
        for match in self.ARG_PATTERN.finditer(args):
            if match.group("dq") is not None:
                parsed.append(match.group("dq"))
            elif match.group("sq") is not None:
                parsed.append(match.group("sq"))
            elif match.group("num") is not None:
                parsed.append(match.group("num"))
            elif match.group("dict") is not None:
                parsed.append(self._parse_dict(match.group("dict")))
            elif match.group("var") is not None:
                resolved = self.resolve_name(match.group("var"))
                parsed.append(resolved if resolved is not None else "")
        return parsed

    def _parse_dict(self, text: str) -> Dict[str, str]:
        """Parse an inline dict like {'a': 'b', "1": 'c'}"""
        tokens = self._parse_args(text[1:-1])
        return {str(tokens[i]): str(tokens[i + 1]) for i in range(0, len(tokens) - 1, 2)}

    @staticmethod
    def _split_filters(expression: str) -> List[str]:
        """Split on `|` outside quotes, parentheses and braces"""
        parts: List[str] = []
        current: List[str] = []
        quote = None
        depth = 0
        for char in expression:
            if quote:
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char in "({":
                depth += 1
            elif char in ")}":
                depth -= 1
            elif char == "|" and depth == 0:
                parts.append("".join(current).strip())
                current = []
                continue
            current.append(char)
        parts.append("".join(current).strip())
        return parts

    def _warn(self, placeholder: str, pattern: str) -> None:
        warning = PatternResolutionWarning(placeholder, pattern)
        self.warnings.append(warning)
        logger.warning(f"Placeholder not resolved: {placeholder} (pattern: {pattern})")
