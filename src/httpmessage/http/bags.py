"""
Parameter bags: simple key/value containers for query strings, cookies,
request attributes and server (environ) variables.

ParameterBag is case-sensitive, like the query string it usually holds.
ServerBag is case-insensitive, because server variables such as
``IIS_WasUrlRewritten`` are spelled differently by different servers.
"""

from typing import Any, Dict, Iterator, List, Mapping, MutableMapping, Optional, Tuple, Union

from .filters import FilterKind, apply_filter
from .headers import HeaderCollection, header_case


class ParameterBag(MutableMapping):
    """Case-sensitive key/value container."""

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None):
        self._parameters: Dict[str, Any] = dict(parameters or {})

    def all(self) -> Dict[str, Any]:
        return dict(self._parameters)

    def keys(self) -> List[str]:  # type: ignore[override]
        return list(self._parameters)

    def get(self, key: str, default: Any = None) -> Any:
        return self._parameters.get(key, default)

    def set(self, key: str, value: Any, replace: bool = True) -> None:
        if replace or key not in self._parameters:
            self._parameters[key] = value

    def has(self, key: str) -> bool:
        return key in self._parameters

    def remove(self, key: str) -> None:
        self._parameters.pop(key, None)

    def replace(self, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self._parameters = dict(parameters or {})

    def add(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> None:
        """Set one key, or every entry of a mapping."""
        if isinstance(key, Mapping):
            for name, item in key.items():
                self.set(name, item)
        else:
            self.set(key, value)

    def copy(self) -> "ParameterBag":
        return type(self)(self.all())

    def filter(
        self,
        key: str,
        default: Any = None,
        filter_kind: FilterKind = FilterKind.DEFAULT,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return apply_filter(self.get(key, default), filter_kind, options)

    def __getitem__(self, key: str) -> Any:
        if not self.has(key):
            raise KeyError(key)
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        if not self.has(key):
            raise KeyError(key)
        self.remove(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._parameters)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}({self.all()!r})>"


class ServerBag(ParameterBag):
    """
    Case-insensitive container for server/environment variables.

    Keys are matched case-insensitively but all() returns them as they
    were first spelled.
    """

    # Headers that CGI passes without the HTTP_ prefix
    SPECIAL_HEADERS = ("CONTENT_TYPE", "CONTENT_LENGTH", "CONTENT_MD5")

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None):
        self._parameters: Dict[str, Tuple[str, Any]] = {}
        for key, value in (parameters or {}).items():
            self.set(key, value)

    def all(self) -> Dict[str, Any]:
        return {original: value for original, value in self._parameters.values()}

    def keys(self) -> List[str]:  # type: ignore[override]
        return [original for original, _ in self._parameters.values()]

    def get(self, key: str, default: Any = None) -> Any:
        item = self._parameters.get(key.upper())
        return default if item is None else item[1]

    def set(self, key: str, value: Any, replace: bool = True) -> None:
        normalized = key.upper()
        if normalized in self._parameters:
            if not replace:
                return
            key = self._parameters[normalized][0]
        self._parameters[normalized] = (key, value)

    def has(self, key: str) -> bool:
        return key.upper() in self._parameters

    def remove(self, key: str) -> None:
        self._parameters.pop(key.upper(), None)

    def replace(self, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self._parameters = {}
        for key, value in (parameters or {}).items():
            self.set(key, value)

    def get_headers(self) -> HeaderCollection:
        """
        Build a header collection from the server variables.

            HTTP_ACCEPT_LANGUAGE  →  Accept-Language
            CONTENT_TYPE          →  Content-Type
        """
        headers = HeaderCollection()
        for original, value in self._parameters.values():
            name = original.upper()
            if name.startswith("HTTP_") or name in self.SPECIAL_HEADERS:
                headers.set(header_case(HeaderCollection.normalize_key(name)), value)
        return headers
