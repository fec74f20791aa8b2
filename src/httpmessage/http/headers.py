"""
=============================================================================
HTTP HEADER COLLECTION
=============================================================================

Case-insensitive, multi-valued header storage with a Cache-Control
directive view that is kept in sync with the raw header text.

=============================================================================
KEY NORMALIZATION
=============================================================================

Headers reach us in several spellings depending on where they came from:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     ONE HEADER, MANY SPELLINGS                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Raw request line         X-Forwarded-For                          │
    │   Hand-written code        x-forwarded-for                          │
    │   CGI / WSGI environ       HTTP_X_FORWARDED_FOR                     │
    │   Config files             x_forwarded_for                          │
    │                                                                      │
    │                     │  lowercase                                    │
    │                     │  "_" → "-"                                    │
    │                     │  strip leading "http-"                        │
    │                     ▼                                                │
    │                                                                      │
    │   Storage key              x-forwarded-for                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The key as the caller first spelled it is kept alongside the values, so
all() can hand back the original casing.

=============================================================================
CACHE-CONTROL DIRECTIVES
=============================================================================

    Cache-Control: public, max-age=3600, community="UCI"
                   ──┬───  ─────┬──────  ───────┬───────
                     │          │               │
              {"public": True, "max-age": "3600", "community": "UCI"}

Two representations, one truth. Every path that changes the cache-control
header re-parses the directive map, and every directive mutation
re-serializes the header. Parsing is tolerant: text that doesn't look like
a directive is skipped, never raised on.

=============================================================================
"""

import copy
import re
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from ..errors import ParseError
from .filters import FilterKind, apply_filter


HeaderValue = Union[str, int, float, List[Any], tuple]

CACHE_CONTROL = "cache-control"

# Same grammar used by most frameworks: token, token=value, token="value"
_CACHE_CONTROL_PATTERN = re.compile(
    r'([a-zA-Z][a-zA-Z_-]*)\s*(?:=(?:"((?:[^"\\]|\\.)*)"|([^ \t",;]*)))?'
)

# Values containing anything else get quoted when serialized
_UNQUOTED_VALUE = re.compile(r"^[a-zA-Z0-9._-]*$")

# quoted-pair: a backslash escapes the next character inside a quoted value
_QUOTED_PAIR = re.compile(r"\\(.)")


@dataclass
class _HeaderEntry:
    values: List[str]
    original_key: str


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _to_values(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def header_case(key: str) -> str:
    """Display form of a header name: "x-forwarded-for" → "X-Forwarded-For"."""
    return "-".join(part.capitalize() for part in key.split("-"))


def parse_cache_control(header: str) -> Dict[str, Union[str, bool]]:
    """
    Parse a Cache-Control header value into a directive map.

    Bare tokens map to True. Names are lowercased. Quoted values are
    unescaped (\\" becomes "). Anything that does not match the directive
    grammar is ignored.
    """
    directives: Dict[str, Union[str, bool]] = {}
    for match in _CACHE_CONTROL_PATTERN.finditer(header):
        name, quoted, unquoted = match.groups()
        if unquoted is not None:
            directives[name.lower()] = unquoted
        elif quoted is not None:
            directives[name.lower()] = _QUOTED_PAIR.sub(r"\1", quoted)
        else:
            directives[name.lower()] = True
    return directives


def serialize_cache_control(directives: Mapping[str, Union[str, bool]]) -> str:
    """
    Render a directive map as Cache-Control header text.

    Directives are sorted by name so the output is deterministic. Values
    outside the token alphabet are quoted, with backslash and double quote
    escaped.
    """
    parts = []
    for name in sorted(directives):
        value = directives[name]
        if value is True:
            parts.append(name)
            continue
        value = str(value)
        if not _UNQUOTED_VALUE.match(value):
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            value = f'"{escaped}"'
        parts.append(f"{name}={value}")
    return ", ".join(parts)


class HeaderCollection:
    """
    Case-insensitive, multi-valued HTTP header store.

    =========================================================================
    STORAGE LAYOUT
    =========================================================================

        _headers = {
            "content-type": _HeaderEntry(["text/html"], "Content-Type"),
            "accept":       _HeaderEntry(["text/html", "*/*"], "ACCEPT"),
        }
        _cache_control = {}     # derived from _headers["cache-control"]

    A key with no values is never stored: setting an empty value removes
    the header instead.

    =========================================================================
    """

    def __init__(self, headers: Optional[Mapping[str, Any]] = None):
        self._headers: Dict[str, _HeaderEntry] = {}
        self._cache_control: Dict[str, Union[str, bool]] = {}

        for key, value in (headers or {}).items():
            self.set(key, value)

    # =========================================================================
    # KEY NORMALIZATION
    # =========================================================================

    @staticmethod
    def normalize_key(key: str) -> str:
        """
        Normalize a header name for storage.

        Lowercases, turns underscores into hyphens and strips a leading
        "http-" (the CGI prefix). Idempotent.

        Example:
            normalize_key("HTTP_X_Foo")  # "x-foo"
            normalize_key("X-Foo")       # "x-foo"
        """
        key = key.lower().replace("_", "-")
        if key.startswith("http-"):
            key = key[5:]
        return key

    # =========================================================================
    # BAG OPERATIONS
    # =========================================================================

    def all(self) -> Dict[str, List[str]]:
        """Return {original key: values} for every header."""
        return {
            entry.original_key: list(entry.values)
            for entry in self._headers.values()
        }

    def keys(self) -> List[str]:
        """Return the normalized header names."""
        return list(self._headers)

    def set(self, key: str, value: HeaderValue, replace: bool = True) -> None:
        """
        Set a header value.

        Args:
            key: Header name (any spelling).
            value: A scalar or a list of values. None, "" or an empty list
                   removes the header.
            replace: Merge into the existing values position by position:
                     new[i] wins where present, old[i] is kept beyond the
                     end of the new list.
        """
        if _is_empty(value):
            self.remove(key)
            return

        values = _to_values(value)
        old_values = self.get(key)

        if replace and old_values:
            merged = list(old_values)
            for index, item in enumerate(values):
                if index < len(merged):
                    merged[index] = item
                else:
                    merged.append(item)
            values = merged

        normalized = self.normalize_key(key)
        self._headers[normalized] = _HeaderEntry(values=values, original_key=key)
        self._sync_cache_control(normalized)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the header's value list, or default if it is not set."""
        entry = self._headers.get(self.normalize_key(key))
        if entry is None:
            return default
        return list(entry.values)

    def get_original_key(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the header name as the caller originally spelled it."""
        entry = self._headers.get(self.normalize_key(key))
        if entry is None:
            return default
        return entry.original_key

    def add(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> None:
        """
        Append header values.

        Unlike set(), the new values go after whatever is already stored.
        A mapping adds each of its entries; a None value removes the header.
        """
        if isinstance(key, Mapping):
            for name, item in key.items():
                self.add(name, item)
            return

        if value is None:
            self.remove(key)
            return

        old_values = self.get(key, [])
        self.set(key, old_values + _to_values(value))

    def has(self, key: str) -> bool:
        """Check whether a header is set (case-insensitive)."""
        return self.normalize_key(key) in self._headers

    def remove(self, key: str) -> None:
        """Remove a header. Removing a missing header is a no-op."""
        normalized = self.normalize_key(key)
        self._headers.pop(normalized, None)
        self._sync_cache_control(normalized)

    def replace(self, headers: Optional[Mapping[str, Any]] = None) -> None:
        """Drop every header and set the given ones instead."""
        self._headers = {}
        self._cache_control = {}
        for key, value in (headers or {}).items():
            self.set(key, value)

    def filter(
        self,
        key: str,
        default: Any = None,
        filter_kind: FilterKind = FilterKind.DEFAULT,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Get a header and run it through a filter.

        Each stored value is filtered individually, so the result is a list
        when the header is present and a filtered default otherwise.

        Example:
            headers.set("Content-Length", "42")
            headers.filter("Content-Length", filter_kind=FilterKind.INT)  # [42]
        """
        return apply_filter(self.get(key, default), filter_kind, options)

    def get_date(self, key: str, default: Optional[datetime] = None) -> Optional[datetime]:
        """
        Parse a header as an RFC 2822 date.

        Returns:
            Timezone-aware datetime, or default if the header is absent.

        Raises:
            ParseError: If the header is present but is not a valid date.
        """
        values = self.get(key)
        if values is None:
            return default

        text = values[0]
        try:
            return parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError) as e:
            raise ParseError(
                f"The {key} HTTP header is not parseable ({text})",
                header=key,
                value=text,
            ) from e

    # =========================================================================
    # CACHE-CONTROL DIRECTIVES
    # =========================================================================

    @property
    def cache_control(self) -> Dict[str, Union[str, bool]]:
        """A copy of the current Cache-Control directive map."""
        return dict(self._cache_control)

    def has_cache_control_directive(self, key: str) -> bool:
        return key.lower() in self._cache_control

    def get_cache_control_directive(self, key: str) -> Union[str, bool, None]:
        return self._cache_control.get(key.lower())

    def add_cache_control_directive(self, key: str, value: Union[str, int, bool] = True) -> None:
        """
        Add or overwrite a Cache-Control directive and rewrite the header.

        Example:
            headers.add_cache_control_directive("max-age", "100")
            headers.get("Cache-Control")   # ["max-age=100"]
        """
        self._cache_control[key.lower()] = True if value is True else str(value)
        self._write_cache_control()

    def remove_cache_control_directive(self, key: str) -> None:
        """Remove a Cache-Control directive and rewrite the header."""
        self._cache_control.pop(key.lower(), None)
        self._write_cache_control()

    def _sync_cache_control(self, normalized_key: str) -> None:
        # Re-derive the directive map from the header text
        if normalized_key != CACHE_CONTROL:
            return
        entry = self._headers.get(CACHE_CONTROL)
        self._cache_control = parse_cache_control(entry.values[0]) if entry else {}

    def _write_cache_control(self) -> None:
        original_key = self.get_original_key(CACHE_CONTROL, "Cache-Control")
        text = serialize_cache_control(self._cache_control)
        if text:
            # replace=False: the regenerated header is the whole truth
            self.set(original_key, text, replace=False)
        else:
            self.remove(original_key)

    # =========================================================================
    # PYTHON PROTOCOLS
    # =========================================================================

    def copy(self) -> "HeaderCollection":
        """Return an independent copy. Mutating one never affects the other."""
        return copy.deepcopy(self)

    def __copy__(self) -> "HeaderCollection":
        return self.copy()

    def __len__(self) -> int:
        return len(self._headers)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._headers))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderCollection):
            return NotImplemented
        return self._headers == other._headers

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.all()!r})>"

    def __str__(self) -> str:
        """
        Serialize to wire format.

            Accept:        text/html\\r\\n
            Cache-Control: max-age=100\\r\\n
            Content-Type:  text/plain\\r\\n

        Headers are sorted by name; the name column is padded to the longest
        key plus one; repeated values produce repeated lines.
        """
        if not self._headers:
            return ""

        width = max(len(key) for key in self._headers) + 1
        lines = []
        for key in sorted(self._headers):
            name = header_case(key)
            for value in self._headers[key].values:
                lines.append(f"{name + ':':<{width}} {value}\r\n")
        return "".join(lines)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# - normalize_key() maps every header spelling to one storage key
# - set() merges positionally, add() appends, empty values remove
# - Cache-Control text and directive map are re-synced on every change
# - str(headers) renders aligned, sorted, CRLF-terminated header lines
# =============================================================================
