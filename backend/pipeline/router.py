"""
Mount point for the externally owned routes.

The router factory is called once with the messaging handle and returns a
FastAPI APIRouter, which is mounted at / inside a bare FastAPI app. A
request no route matches is passed on; errors raised by a route are
rendered by the terminal error renderer.
"""

import importlib
import logging
from typing import Callable

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.routing import Match
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pipeline.base import Forward, Outcome, Responded, Stage
from pipeline.errors import ErrorRenderer

logger = logging.getLogger(__name__)

RouterFactory = Callable[..., APIRouter]


def load_router_factory(path: str) -> RouterFactory:
    """Import "package.module:function"."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Router must look like 'module:factory', got {path!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    if not callable(factory):
        raise TypeError(f"{path} is not callable")
    return factory


class RouteErrorMiddleware:
    """
    Renders unexpected route exceptions as the error page.

    Sits inside FastAPI's outermost server-error middleware, so a handled
    exception ends here instead of being re-raised to the server.
    """

    def __init__(self, app: ASGIApp, error_renderer: ErrorRenderer):
        self.app = app
        self.error_renderer = error_renderer

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if started:
                raise
            response = self.error_renderer.render(Request(scope, receive), exc)
            await response(scope, receive, send)


class RouterStage(Stage):
    name = "router"

    def __init__(self, router: APIRouter, error_renderer: ErrorRenderer):
        self.router = router
        self.app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
        self.app.include_router(router)
        self.app.add_exception_handler(HTTPException, error_renderer.handle_exception)
        self.app.add_exception_handler(RequestValidationError, error_renderer.handle_exception)
        self.app.add_middleware(RouteErrorMiddleware, error_renderer=error_renderer)

    def matches(self, request: Request) -> bool:
        for route in self.app.router.routes:
            match, _ = route.matches(request.scope)
            # PARTIAL means the path matched with another method: the route answers 405
            if match != Match.NONE:
                return True
        return False

    async def handle(self, request: Request) -> Outcome:
        if not self.matches(request):
            return Forward()
        return Responded(self.app)
