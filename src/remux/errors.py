"""Errors raised while building or consulting a route table."""


class RouteError(ValueError):
    """Base class for route configuration errors raised at registration time."""


class DuplicateRouteError(RouteError):
    """A literal path or a pattern with identical source is already registered."""


class InvalidPatternError(RouteError):
    """A declaration did not compile to a valid regular expression."""


class RouterSealedError(RuntimeError):
    """The route table was modified after it was sealed for dispatch."""


class NoMatchError(LookupError):
    """No literal or pattern route matched the path.

    Only raised by RouteTable.lookup; the router resolves it by invoking the
    not found handler.
    """
