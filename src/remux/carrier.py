"""Handler wrapper that carries path variables into the request."""

import re
from contextvars import ContextVar

from remux.query import QueryValues, query_values
from remux.rsgi import HTTPProtocol, HTTPScope, RSGIHTTPHandler

path_params: ContextVar[dict[str, str]] = ContextVar("path_params")
http_route: ContextVar[str] = ContextVar("http_route")
# path used for matching, differs from scope.path when a trailing / was stripped
route_path: ContextVar[str] = ContextVar("route_path")
# literal, pattern or vars for a matched route, not_found otherwise
route_kind: ContextVar[str] = ContextVar("route_kind")


class VariableCarrier:
    """Wraps the handler of a variable route.

    Before calling the handler, the values captured from the path are prepended
    to the request's QueryValues (query_values) and exposed as a plain dict
    (path_params). Both are reset once the handler returns.
    """

    __slots__ = ("declaration", "handler", "matcher", "var_names")

    def __init__(
        self,
        declaration: str,
        matcher: re.Pattern[str],
        var_names: tuple[str, ...],
        handler: RSGIHTTPHandler,
    ) -> None:
        self.declaration = declaration
        self.matcher = matcher
        self.var_names = var_names
        self.handler = handler

    def extract(self, path: str) -> list[tuple[str, str]]:
        """Return (name, value) pairs in declaration order."""
        match = self.matcher.fullmatch(path)
        if match is None:
            msg = f"path {path!r} does not match route {self.declaration!r}"
            raise ValueError(msg)
        return list(zip(self.var_names, match.groups(), strict=True))

    async def __call__(self, scope: HTTPScope, proto: HTTPProtocol) -> None:
        pairs = self.extract(route_path.get(scope.path))
        store = query_values.get(None)
        if store is None:
            store = QueryValues.from_query_string(scope.query_string)
        values_token = query_values.set(store.prepend(pairs))
        params_token = path_params.set(dict(pairs))
        try:
            await self.handler(scope, proto)
        finally:
            path_params.reset(params_token)
            query_values.reset(values_token)

    def __repr__(self) -> str:
        name = getattr(self.handler, "__qualname__", repr(self.handler))
        return f"VariableCarrier({self.declaration!r}, {name})"
