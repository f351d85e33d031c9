# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "remux @ file:///${PROJECT_ROOT}/../remux",
#     "granian[uvloop]>=2.6.0,<3.0.0",
# ]
# ///
"""RSGI server demo.

Fully functional web server using Granian + remux Router.

    curl localhost:8000/user/alice?name=bob
    curl localhost:8000/api/example
"""

import asyncio
import json
import logging

from granian.server.embed import Server

from remux import Router, parse, path_params
from remux.rsgi import HTTPProtocol, HTTPScope

ADDRESS = "127.0.0.1"
PORT = 8000


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    router = Router(strip_trailing_slash=True, log=True, not_found_handler=not_found)
    router.add_route("/", home)
    router.add_route("/api[/]*$", api)
    router.add_route("/api/example$", api_example)
    router.add_route("/user/<name>", user)
    router.add_route("/user/<name>/post/<id>", user_post)
    router.finalize()
    print(router.format_routes(), flush=True)

    server = Server(router, address=ADDRESS, port=PORT, log_access=True)
    try:
        await server.serve()
    except asyncio.CancelledError:
        pass


async def not_found(_scope: HTTPScope, proto: HTTPProtocol) -> None:
    proto.response_str(404, [("Content-Type", "text/plain")], "Not found")


async def home(s: HTTPScope, p: HTTPProtocol) -> None:
    p.response_str(200, [("Content-Type", "text/plain")], "Welcome home")


async def api(s: HTTPScope, p: HTTPProtocol) -> None:
    p.response_str(200, [("Content-Type", "text/plain")], "api")


async def api_example(s: HTTPScope, p: HTTPProtocol) -> None:
    p.response_str(200, [("Content-Type", "text/plain")], "api example")


async def user(s: HTTPScope, p: HTTPProtocol) -> None:
    # path variables are read like query string values, and win over them
    single, multi = parse(s)
    serialized = json.dumps({"single": single, "multi": multi})
    p.response_str(200, [("Content-Type", "application/json")], serialized)


async def user_post(s: HTTPScope, p: HTTPProtocol) -> None:
    params = path_params.get()
    try:
        post_id = int(params["id"])
    except ValueError:
        p.response_str(404, [("Content-Type", "text/plain")], "Not found")
        return
    serialized = json.dumps({"user": params["name"], "post": post_id})
    p.response_str(200, [("Content-Type", "application/json")], serialized)


if __name__ == "__main__":
    asyncio.run(main())
