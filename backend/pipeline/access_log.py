import logging
import time

from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from pipeline.base import Forward, Outcome, Stage

logger = logging.getLogger("access")


class AccessLogStage(Stage):
    """One line per request once the response is out: METHOD path STATUS time ms - length."""

    name = "access_log"

    async def handle(self, request: Request) -> Outcome:
        request.state.access_log_start = time.perf_counter()
        return Forward()

    def on_headers(self, request: Request, headers: MutableHeaders) -> None:
        request.state.response_length = headers.get("content-length", "-")

    def on_complete(self, request: Request, status: int) -> None:
        start = getattr(request.state, "access_log_start", None)
        elapsed_ms = (time.perf_counter() - start) * 1000 if start is not None else 0.0
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        logger.info(
            "%s %s %d %.3f ms - %s",
            request.method,
            path,
            status,
            elapsed_ms,
            getattr(request.state, "response_length", "-"),
        )
