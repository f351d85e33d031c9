"""Route table: literal routes by exact path, pattern routes by specificity.

Pattern routes are tried longest source first, a stable sort so equal length
patterns keep their registration order:

    /user/(.+?)/post/(.+?)   (22)
    /api/example$            (13)
    /api[/]*$                (9)

Overlapping patterns of equal length therefore dispatch in registration order.
"""

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Never

from remux.carrier import VariableCarrier
from remux.errors import DuplicateRouteError, NoMatchError, RouterSealedError
from remux.pattern import LiteralRoute, PlainPattern, VariablePattern, compile_route
from remux.rsgi import RSGIHTTPHandler

logger = logging.getLogger(__name__)


class FrozenDict[K, V](dict[K, V]):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._hash: int | None = None

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(frozenset(self.items()))
        return self._hash

    def _immutable(self, *args, **kwargs) -> Never:
        msg = "FrozenDict is immutable"
        raise TypeError(msg)

    __setitem__ = __delitem__ = clear = pop = popitem = setdefault = update = _immutable


type MatchKind = Literal["literal", "pattern", "vars"]


@dataclass(slots=True, frozen=True)
class PatternRoute:
    declaration: str  # as registered, before variable substitution
    matcher: re.Pattern[str]
    handler: RSGIHTTPHandler
    kind: MatchKind = "pattern"


class RouteTable:
    """Holds every route of a router.

    Built single-threaded at startup, then sealed. A sealed table is read-only
    and can be consulted concurrently without locking.
    """

    __slots__ = ("_check_pattern", "_literal", "_patterns", "_sealed")
    _literal: dict[str, RSGIHTTPHandler]
    _patterns: list[PatternRoute] | tuple[PatternRoute, ...]

    def __init__(self, *, check_pattern: bool = True) -> None:
        self._literal = {}
        self._patterns = []
        self._check_pattern = check_pattern
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def check_pattern(self) -> bool:
        return self._check_pattern

    @property
    def literal_routes(self) -> MappingProxyType[str, RSGIHTTPHandler]:
        """Read-only view, routes are added through add_route."""
        return MappingProxyType(self._literal)

    @property
    def pattern_routes(self) -> tuple[PatternRoute, ...]:
        return tuple(self._patterns)

    def seal(self) -> None:
        """Freeze the table for dispatch. Idempotent."""
        if self._sealed:
            return
        self._literal = FrozenDict(self._literal)
        self._patterns = tuple(self._patterns)
        self._sealed = True

    def add_route(self, declaration: str, handler: RSGIHTTPHandler) -> None:
        """Classify declaration and register handler under it.

        Raises DuplicateRouteError, InvalidPatternError or RouterSealedError.
        """
        self._check_open(declaration)
        route = compile_route(declaration, check_pattern=self._check_pattern)
        match route:
            case LiteralRoute(path=path):
                self._register_literal(path, handler)
            case PlainPattern(declaration=decl, matcher=matcher):
                self._register_pattern(decl, matcher, handler)
            case VariablePattern(declaration=decl, matcher=matcher, var_names=names):
                self._register_variable_pattern(decl, matcher, names, handler)

    def lookup(self, path: str) -> tuple[RSGIHTTPHandler, str, MatchKind]:
        """Return (handler, declaration, kind) of the route for path.

        Literal routes are checked first, then pattern routes in specificity
        order; the first pattern matching the whole path wins.

        Raises NoMatchError if nothing matches.
        """
        handler = self._literal.get(path)
        if handler is not None:
            return handler, path, "literal"
        for route in self._patterns:
            if route.matcher.fullmatch(path) is not None:
                return route.handler, route.declaration, route.kind
        raise NoMatchError(path)

    def format(self) -> str:
        """Column-aligned listing of routes in the order they are tried:

            literal   /                        home
            literal   /about                   about
            vars      /user/<id>/post/<pid>    user_post
            pattern   /api/example$            api_example
            pattern   /api[/]*$                api
        """
        rows = [
            ("literal", path, _qualname(handler))
            for path, handler in sorted(self._literal.items())
        ]
        for route in self._patterns:
            handler = route.handler
            if isinstance(handler, VariableCarrier):
                handler = handler.handler
            rows.append((route.kind, route.declaration, _qualname(handler)))
        if not rows:
            return ""
        kind_w = max(len(r[0]) for r in rows)
        decl_w = max(len(r[1]) for r in rows)
        return "\n".join(
            f"{kind:<{kind_w}}   {decl:<{decl_w}}   {name}" for kind, decl, name in rows
        )

    def _check_open(self, declaration: str) -> None:
        if self._sealed:
            msg = f"cannot add route {declaration!r}, route table is sealed"
            raise RouterSealedError(msg)

    def _register_literal(self, path: str, handler: RSGIHTTPHandler) -> None:
        if path in self._literal:
            msg = f"route already registered: {path!r}"
            raise DuplicateRouteError(msg)
        self._literal[path] = handler
        logger.debug("registered literal route %r -> %s", path, _qualname(handler))

    def _register_pattern(
        self,
        declaration: str,
        matcher: re.Pattern[str],
        handler: RSGIHTTPHandler,
        kind: MatchKind = "pattern",
    ) -> None:
        for route in self._patterns:
            if route.matcher.pattern == matcher.pattern:
                msg = (
                    f"route {declaration!r} has the same pattern as "
                    f"{route.declaration!r}: {matcher.pattern!r}"
                )
                raise DuplicateRouteError(msg)
        routes = [*self._patterns, PatternRoute(declaration, matcher, handler, kind)]
        routes.sort(key=lambda r: len(r.matcher.pattern), reverse=True)  # stable
        self._patterns = routes
        logger.debug(
            "registered pattern route %r -> %s", declaration, _qualname(handler)
        )

    def _register_variable_pattern(
        self,
        declaration: str,
        matcher: re.Pattern[str],
        var_names: tuple[str, ...],
        handler: RSGIHTTPHandler,
    ) -> None:
        carrier = VariableCarrier(declaration, matcher, var_names, handler)
        self._register_pattern(declaration, matcher, carrier, "vars")


def _qualname(obj: object) -> str:
    """Extract __qualname__ from a callable, falling back to repr."""
    return str(obj.__qualname__) if hasattr(obj, "__qualname__") else repr(obj)
