"""
Pipeline runner.

Runs a request through an ordered list of stages until one responds or
forwards an error, then sends the response. Errors, whether forwarded by a
stage, raised inside one, or raised while a response is being produced,
end up at the single terminal error renderer.
"""

import logging
from typing import Any, Optional, Sequence

from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import Message, Receive, Scope, Send

from errors import HTTPError
from pipeline.base import Forward, Outcome, Responded, Stage
from pipeline.errors import ErrorRenderer

logger = logging.getLogger(__name__)


class Pipeline:
    def __init__(
        self,
        stages: Sequence[Stage],
        error_renderer: ErrorRenderer,
        state: Optional[dict[str, Any]] = None,
    ):
        self.stages = list(stages)
        self.error_renderer = error_renderer
        # Application-level objects exposed on every request.state
        self.state = dict(state or {})

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            # Only the messaging handle speaks websocket
            await send({"type": "websocket.close", "code": 1000})
            return

        request = Request(scope, receive)
        for key, value in self.state.items():
            setattr(request.state, key, value)

        entered: list[Stage] = []
        outcome = await self._run_stages(request, entered)

        if isinstance(outcome, Responded):
            response = outcome.response
        else:
            error = outcome.error or HTTPError(500, "No stage produced a response")
            response = self.error_renderer.render(request, error)

        await self._send(request, response, entered, send)

    async def _run_stages(self, request: Request, entered: list[Stage]) -> Outcome:
        outcome: Outcome = Forward()
        for stage in self.stages:
            entered.append(stage)
            try:
                outcome = await stage.handle(request)
            except Exception as exc:
                outcome = Forward(exc)
            if isinstance(outcome, Responded) or outcome.error is not None:
                break
        return outcome

    async def _send(self, request: Request, response, entered: list[Stage], send: Send) -> None:
        status = 500
        started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal status, started
            if message["type"] == "http.response.start":
                started = True
                status = message["status"]
                headers = MutableHeaders(scope=message)
                for stage in entered:
                    stage.on_headers(request, headers)
            await send(message)

        receive = self._replay_receive(request)
        try:
            try:
                await response(request.scope, receive, send_wrapper)
            except Exception as exc:
                if started:
                    raise
                fallback = self.error_renderer.render(request, exc)
                await fallback(request.scope, receive, send_wrapper)
        finally:
            for stage in reversed(entered):
                stage.on_complete(request, status)

    @staticmethod
    def _replay_receive(request: Request) -> Receive:
        """Hand an already-read body to whatever produces the response."""
        raw_body = getattr(request.state, "raw_body", None)
        if raw_body is None:
            return request.receive

        sent = False

        async def receive() -> Message:
            nonlocal sent
            if not sent:
                sent = True
                return {"type": "http.request", "body": raw_body, "more_body": False}
            return await request.receive()

        return receive

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("Pipeline ready: %s", " -> ".join(s.name for s in self.stages))
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
