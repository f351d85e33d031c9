"""HTTP router/multiplexer for RSGI servers.

Inspired by the regexp muxes of the go ecosystem: literal routes are looked up by
exact path, everything else is tried as a regular expression, longest first.
"""

import logging
from collections.abc import Callable
from typing import Any, cast

from remux.carrier import http_route, path_params, route_kind, route_path
from remux.errors import NoMatchError, RouterSealedError
from remux.query import QueryValues, query_values
from remux.rsgi import HTTPProtocol, HTTPScope, RSGIHTTPHandler
from remux.table import RouteTable

logger = logging.getLogger(__name__)


async def not_found(_scope: HTTPScope, proto: HTTPProtocol) -> None:
    """Default handler for paths that can't be found."""
    proto.response_str(
        404, [("content-type", "text/plain; charset=utf-8")], "404 page not found"
    )


class Router:
    """RSGI application dispatching each request to exactly one handler.

    Routes are registered with `add_route` (or the `route` decorator) during
    setup. The route table is sealed by `finalize`, which runs on server startup
    and at the latest on the first request; registering afterwards raises
    RouterSealedError.
    """

    __slots__ = ("_log", "_not_found_handler", "_strip_trailing_slash", "_table")
    _table: RouteTable
    _not_found_handler: RSGIHTTPHandler | None

    def __init__(
        self,
        *,
        not_found_handler: RSGIHTTPHandler | None = None,
        strip_trailing_slash: bool = False,
        check_pattern: bool = True,
        log: bool = False,
    ) -> None:
        self._table = RouteTable(check_pattern=check_pattern)
        self._not_found_handler = not_found_handler
        self._strip_trailing_slash = strip_trailing_slash
        self._log = log

    async def __rsgi__(self, scope: HTTPScope, proto: HTTPProtocol) -> None:
        if not self._table.sealed:
            self.finalize()
        handler, route, kind, path = self._handler(scope.path)
        values = QueryValues.from_query_string(scope.query_string)
        tokens = (
            (query_values, query_values.set(values)),
            (path_params, path_params.set({})),
            (http_route, http_route.set(route)),
            (route_kind, route_kind.set(kind)),
            (route_path, route_path.set(path)),
        )
        try:
            await handler(scope, proto)
        finally:
            for var, token in reversed(tokens):
                var.reset(token)

    def __rsgi_init__(self, loop: Any) -> None:
        self.finalize()

    def __rsgi_del__(self, loop: Any) -> None:
        pass

    @property
    def strip_trailing_slash(self) -> bool:
        """Match "/foo/" against the route for "/foo". The root path is kept."""
        return self._strip_trailing_slash

    @strip_trailing_slash.setter
    def strip_trailing_slash(self, value: bool) -> None:
        self._check_open("strip_trailing_slash")
        self._strip_trailing_slash = value

    @property
    def log(self) -> bool:
        """Log every requested path at INFO."""
        return self._log

    @log.setter
    def log(self, value: bool) -> None:
        self._check_open("log")
        self._log = value

    @property
    def check_pattern(self) -> bool:
        """Compile declarations with regexp metacharacters as patterns.

        When False, any declaration without <name> variables is a literal route.
        """
        return self._table.check_pattern

    @property
    def table(self) -> RouteTable:
        return self._table

    def finalize(self) -> None:
        """Seal the route table. Idempotent.

        This is called automatically on server startup (RSGI init hook) and on
        the first request, but can be called manually before forking workers.
        """
        if self._table.sealed:
            return
        if self._not_found_handler is None:
            self._not_found_handler = not_found
        self._table.seal()

    def _handler(self, path: str) -> tuple[RSGIHTTPHandler, str, str, str]:
        """Returns (handler, matched route, route kind, path used for matching).

        Must only be called once finalize has installed the not found handler.
        """
        log_msg = "requested: " + path
        # only strip "/" if it's not the entire path
        if self._strip_trailing_slash and len(path) > 1 and path.endswith("/"):
            path = path[:-1]
            log_msg += " (stripped to: " + path + ")"
        if self._log:
            logger.info(log_msg)
        try:
            handler, route, kind = self._table.lookup(path)
        except NoMatchError:
            not_found_handler = cast("RSGIHTTPHandler", self._not_found_handler)
            return not_found_handler, "", "not_found", path
        return handler, route, kind, path

    def add_route(self, declaration: str, handler: RSGIHTTPHandler) -> None:
        """Registers handler for declaration.

        The declaration is a literal path ("/about"), a regular expression
        ("/api[/]*$") or a path with <name> variables ("/user/<id>"), whose
        values are readable from the handler with `parse` or `path_params`.

        Raises DuplicateRouteError if the literal path, or a pattern with the same
        source, is already registered, and InvalidPatternError if the declaration
        does not compile.
        """
        self._table.add_route(declaration, handler)

    def route(self, declaration: str) -> Callable[[RSGIHTTPHandler], RSGIHTTPHandler]:
        """Decorator form of `add_route`."""

        def decorator(handler: RSGIHTTPHandler) -> RSGIHTTPHandler:
            self.add_route(declaration, handler)
            return handler

        return decorator

    def not_found(self, handler: RSGIHTTPHandler) -> None:
        """Registers http handler for paths that can't be found."""
        self._check_open("not found handler")
        if self._not_found_handler is not None:
            msg = "not found handler is already set"
            raise ValueError(msg)
        self._not_found_handler = handler

    def format_routes(self) -> str:
        """Registered routes in dispatch order, see RouteTable.format."""
        return self._table.format()

    def _check_open(self, what: str) -> None:
        if self._table.sealed:
            msg = f"cannot set {what}, router is finalized"
            raise RouterSealedError(msg)
