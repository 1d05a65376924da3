"""
Filter registry - named value filters usable in pattern expressions.

A filter is applied as `{{ value|name(arg, ...) }}`. Filters never raise on
bad input: they return the value unchanged.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import html
import logging
import posixpath
import re
from urllib.parse import quote

logger = logging.getLogger(__name__)

FilterFunc = Callable[..., Any]


def to_text(value: Any) -> str:
    """First item of a list, or the value itself, as a string."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else ""
    if value is None:
        return ""
    return str(value)


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


class FilterRegistry:
    """Registry of available filters."""

    def __init__(self):
        """Initialize registry."""
        self.filters: Dict[str, FilterFunc] = {
            "abs": self._abs,
            "basename": lambda x, *a, **kw: posixpath.basename(to_text(x)),
            "capitalize": lambda x, *a, **kw: to_text(x)[:1].upper() + to_text(x)[1:],
            "date": self._date,
            "e": self._escape,
            "escape": self._escape,
            "first": lambda x, *a, **kw: x[0] if isinstance(x, list) and x else to_text(x)[:1],
            "format": self._format,
            "implode": self._join,
            "join": self._join,
            "last": lambda x, *a, **kw: x[-1] if isinstance(x, list) and x else to_text(x)[-1:],
            "length": lambda x, *a, **kw: str(len(x) if isinstance(x, list) else len(to_text(x))),
            "lower": lambda x, *a, **kw: to_text(x).lower(),
            "replace": self._replace,
            "slice": self._slice,
            "split": self._split,
            "striptags": lambda x, *a, **kw: re.sub(r"<[^>]*>", "", to_text(x)),
            "table": self._table,
            "title": lambda x, *a, **kw: re.sub(r"(^|\s)(\S)", lambda m: m.group(1) + m.group(2).upper(), to_text(x)),
            "trim": self._trim,
            "upper": lambda x, *a, **kw: to_text(x).upper(),
            "url_encode": lambda x, *a, **kw: quote(to_text(x), safe=""),
            "dateIso": self._date_iso,
            "dateRevert": self._date_revert,
            "dateSql": self._date_sql,
        }

    def register(self, name: str, func: FilterFunc) -> None:
        """Register or replace a filter."""
        self.filters[name] = func

    def has(self, name: str) -> bool:
        return name in self.filters

    def get(self, name: str) -> Optional[FilterFunc]:
        """Get filter by name."""
        return self.filters.get(name)

    def apply(self, value: Any, name: str, args: Optional[List[Any]] = None, **context) -> Any:
        """
        Apply a filter.

        Args:
            value: Current value (string or list)
            name: Filter name
            args: Parsed filter arguments
            **context: Extra context, e.g. `tables` for the table filter

        Returns:
            Filtered value, or the value unchanged for unknown or failing filters
        """
        func = self.get(name)
        if func is None:
            logger.debug(f"Unknown filter: {name}")
            return value
        try:
            return func(value, *(args or []), **context)
        except Exception as e:
            logger.warning(f"Filter '{name}' failed on {value!r}: {e}")
            return value

    @staticmethod
    def _abs(value: Any, *args, **context) -> str:
        text = to_text(value)
        try:
            number = abs(float(text))
        except ValueError:
            return text
        return str(int(number)) if number.is_integer() else str(number)

    @staticmethod
    def _date(value: Any, *args, **context) -> str:
        """Format an ISO date with a strftime format; timestamp without format."""
        text = to_text(value).strip()
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return text
        try:
            if not args:
                return str(int(parsed.timestamp()))
            return parsed.strftime(str(args[0]))
        except (OverflowError, OSError, ValueError):
            return text

    @staticmethod
    def _escape(value: Any, *args, **context) -> str:
        return html.escape(to_text(value), quote=False).replace('"', "&quot;")

    @staticmethod
    def _format(value: Any, *args, **context) -> str:
        text = to_text(value)
        if not args:
            return text
        try:
            return text % tuple(args)
        except (TypeError, ValueError):
            return text

    @staticmethod
    def _join(value: Any, *args, **context) -> str:
        separator = str(args[0]) if args else ""
        if isinstance(value, (list, tuple)):
            return separator.join(str(v) for v in value if v is not None)
        return to_text(value)

    @staticmethod
    def _replace(value: Any, *args, **context) -> str:
        """Replace substrings, longest keys first, in a single pass."""
        text = to_text(value)
        pairs = args[0] if args and isinstance(args[0], dict) else {}
        pairs = {str(k): str(v) for k, v in pairs.items() if str(k)}
        if not pairs:
            return text
        keys = sorted(pairs, key=len, reverse=True)
        pattern = re.compile("|".join(re.escape(k) for k in keys))
        return pattern.sub(lambda m: pairs[m.group(0)], text)

    @staticmethod
    def _slice(value: Any, *args, **context) -> Any:
        start = _to_int(args[0]) if args else 0
        length = _to_int(args[1]) if len(args) > 1 else None
        sequence = value if isinstance(value, list) else to_text(value)
        part = sequence[start:]
        return part if length is None else part[:length]

    @staticmethod
    def _split(value: Any, *args, **context) -> Any:
        text = to_text(value)
        separator = str(args[0]) if args else ""
        limit = _to_int(args[1]) if len(args) > 1 else 0
        if separator:
            return text.split(separator, limit - 1) if limit > 0 else text.split(separator)
        if limit > 0:
            return [text[i:i + limit] for i in range(0, len(text), limit)]
        return text

    @staticmethod
    def _table(value: Any, *args, **context) -> str:
        """Inline table `table({'k': 'v'})` or named table `table('name')`."""
        text = to_text(value)
        if not args:
            return text
        if isinstance(args[0], dict):
            return str(args[0].get(text, text))
        tables = context.get("tables")
        if tables is None:
            return text
        label = tables.lookup(str(args[0]), text, context.get("lang"))
        return text if label is None else label

    @staticmethod
    def _trim(value: Any, *args, **context) -> str:
        text = to_text(value)
        mask = str(args[0]) if args and args[0] else None
        side = str(args[1]) if len(args) > 1 else ""
        if side == "left":
            return text.lstrip(mask)
        if side == "right":
            return text.rstrip(mask)
        return text.strip(mask)

    @staticmethod
    def _date_iso(value: Any, *args, **context) -> str:
        """
        Convert a compact date into ISO 8601.

        "d1605110512" => "1605-11-05T12"; values with unknown digits ("u") are
        kept as is.
        """
        text = to_text(value)
        if not text or "u" in text:
            return text
        first = text[0]
        if not (first.isdigit() or first in "-+cd "):
            return text
        prefix = ""
        if first in "-+cd ":
            prefix = "-" if first in "-c" else ""
            text = text[1:]
        result = (
            f"{prefix}{text[0:4]}-{text[4:6]}-{text[6:8]}"
            f"T{text[8:10]}:{text[10:12]}:{text[12:14]}"
        )
        return result.rstrip("-:T |#")

    @staticmethod
    def _date_revert(value: Any, *args, **context) -> str:
        """Convert "dd/mm/yy" or "ddmmyyyy" into "yyyy-mm-dd"."""
        text = to_text(value).strip()
        separator = re.search(r"\D", text)
        if separator:
            parts = text.split(separator.group(0))
            if len(parts) < 3:
                return text
            day, month, year = parts[0], parts[1], parts[2]
            if len(year) == 2:
                year = "20" + year
            return f"{_to_int(year):04d}-{_to_int(month):02d}-{_to_int(day):02d}"
        year = "20" + text[4:6] if len(text) == 6 else text[4:8]
        return f"{year}-{text[2:4]}-{text[0:2]}"

    @staticmethod
    def _date_sql(value: Any, *args, **context) -> str:
        """Convert "19850901141236.0" into "1985-09-01 14:12:36"."""
        text = to_text(value).strip()
        return f"{text[0:4]}-{text[4:6]}-{text[6:8]} {text[8:10]}:{text[10:12]}:{text[12:14]}"
