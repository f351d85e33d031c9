"""OpenTelemetry tracing for route handlers.

Install with: uv add "remux[otel]"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

if TYPE_CHECKING:
    from collections.abc import Callable

    from remux.rsgi import HTTPProtocol, HTTPScope, RSGIHTTPHandler

try:
    from opentelemetry import trace
    from opentelemetry.propagate import extract
    from opentelemetry.trace import SpanKind, StatusCode, TracerProvider
except ImportError as e:
    msg = (
        "OpenTelemetry tracing requires the 'otel' extra. "
        "Install with: uv add 'remux[otel]'"
    )
    raise ImportError(msg) from e

from remux.carrier import http_route, path_params, route_kind, route_path


class _StatusRecorder:
    """Forwards to the wrapped protocol, remembering the response status."""

    __slots__ = ("_proto", "status")

    def __init__(self, proto: HTTPProtocol) -> None:
        self._proto = proto
        self.status: int | None = None

    async def __call__(self) -> bytes:
        return await self._proto()

    def __aiter__(self):
        return self._proto.__aiter__()

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._proto, name)
        if not name.startswith("response_"):
            return attr

        def respond(status: int, *args: Any) -> Any:
            self.status = status
            return attr(status, *args)

        return respond


def otel(
    *, tracer_provider: TracerProvider | None = None
) -> Callable[[RSGIHTTPHandler], RSGIHTTPHandler]:
    """Create a tracing wrapper for the handlers of a Router.

    Wrap each handler before registering it, not the Router: the route is only
    known once the router has looked it up, and it reaches the handler through
    context variables. Every request gets a server span named after the
    declaration it matched (``GET /user/<id>``), or after the method alone for
    the not found handler, with the attributes:

        http.route              declaration as registered
        remux.route.kind        literal, pattern, vars or not_found
        remux.route.path        path the route was matched against
        remux.route.var.<name>  value of each path variable

    plus ``http.request.method``, ``url.path``, ``url.query`` and
    ``http.response.status_code``. Trace context is extracted from the request
    headers (e.g. ``traceparent``).

    Example:
        traced = otel()
        router.add_route("/user/<id>", traced(get_user))
        router.not_found(traced(not_found))
    """
    tracer = trace.get_tracer("remux", tracer_provider=tracer_provider)

    def wrap(handler: RSGIHTTPHandler) -> RSGIHTTPHandler:
        if hasattr(handler, "__rsgi__"):
            msg = "otel() wraps route handlers, wrap each handler before add_route"
            raise TypeError(msg)

        async def traced_handler(scope: HTTPScope, proto: HTTPProtocol) -> None:
            route = http_route.get("")
            attributes = {
                "http.request.method": scope.method,
                "url.path": scope.path,
                "remux.route.path": route_path.get(scope.path),
            }
            if route:
                attributes["http.route"] = route
            kind = route_kind.get("")
            if kind:
                attributes["remux.route.kind"] = kind
            if scope.query_string:
                attributes["url.query"] = scope.query_string
            for name, value in path_params.get({}).items():
                attributes[f"remux.route.var.{name}"] = value

            recorder = _StatusRecorder(proto)
            with tracer.start_as_current_span(
                f"{scope.method} {route}" if route else scope.method,
                context=extract(scope.headers),
                kind=SpanKind.SERVER,
                attributes=attributes,
            ) as span:
                try:
                    await handler(scope, cast("HTTPProtocol", recorder))
                finally:
                    if recorder.status is not None:
                        span.set_attribute("http.response.status_code", recorder.status)
                        if recorder.status >= 500:
                            span.set_status(StatusCode.ERROR)

        traced_handler.__qualname__ = getattr(
            handler, "__qualname__", traced_handler.__qualname__
        )
        return traced_handler

    return wrap
