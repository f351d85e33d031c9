from importlib.metadata import version

from .carrier import http_route, path_params, route_kind, route_path
from .errors import (
    DuplicateRouteError,
    InvalidPatternError,
    RouteError,
    RouterSealedError,
)
from .query import QueryValues, parse, query_values
from .router import Router, not_found

__all__ = [
    "DuplicateRouteError",
    "InvalidPatternError",
    "QueryValues",
    "RouteError",
    "Router",
    "RouterSealedError",
    "__version__",
    "http_route",
    "not_found",
    "parse",
    "path_params",
    "query_values",
    "route_kind",
    "route_path",
]

__version__ = version("remux")
