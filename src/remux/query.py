"""Per-request multi-valued store for query string values and path variables.

Path variables extracted by a variable route are prepended to the values parsed
from the query string, so a single-value read prefers the path while the query
string values stay reachable:

    GET /user/alice?name=bob  (route "/user/<name>")

    query_values.get()["name"]           -> "alice"
    query_values.get().get_list("name")  -> ["alice", "bob"]
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextvars import ContextVar
from urllib.parse import parse_qsl

from remux.rsgi import HTTPScope

query_values: ContextVar[QueryValues] = ContextVar("query_values")


class QueryValues(Mapping[str, str]):
    """Immutable mapping of key to one or more string values.

    `__getitem__` returns the first value for a key, `get_list` returns all of
    them in order.
    """

    __slots__ = ("_data",)
    _data: dict[str, tuple[str, ...]]

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        data: dict[str, list[str]] = {}
        for key, value in pairs:
            data.setdefault(key, []).append(value)
        self._data = {k: tuple(v) for k, v in data.items()}

    @classmethod
    def from_query_string(cls, query_string: str) -> QueryValues:
        return cls(parse_qsl(query_string, keep_blank_values=True))

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryValues):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {list(v)!r}" for k, v in self._data.items())
        return f"QueryValues({{{items}}})"

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, ()))

    def items_multi(self) -> Iterator[tuple[str, str]]:
        """Yield every (key, value) pair, values of a key in stored order."""
        for key, values in self._data.items():
            for value in values:
                yield key, value

    def prepend(self, pairs: Iterable[tuple[str, str]]) -> QueryValues:
        """Return a new store with pairs placed ahead of existing values per key."""
        head = QueryValues(pairs)
        merged = QueryValues()
        merged._data = dict(head._data)
        for key, values in self._data.items():
            merged._data[key] = merged._data.get(key, ()) + values
        return merged


def parse(scope: HTTPScope) -> tuple[dict[str, str], dict[str, list[str]]]:
    """Read back the carried values for the current request.

    Returns (single, multi): `single` maps every key to its first value, `multi`
    holds the remaining values of keys that had more than one.

    Inside a dispatch this reads the store set by the router (including any path
    variables); outside of one it parses scope.query_string.
    """
    values = query_values.get(None)
    if values is None:
        values = QueryValues.from_query_string(scope.query_string)
    single: dict[str, str] = {}
    multi: dict[str, list[str]] = {}
    for key in values:
        first, *rest = values.get_list(key)
        single[key] = first
        if rest:
            multi[key] = rest
    return single, multi
