"""
Stage contract for the request pipeline.

Every stage answers a request with one of two outcomes:

  Responded(response)  - the stage produced the response; later stages are skipped
  Forward()            - hand the request to the next stage
  Forward(error)       - skip straight to the error renderer

Stages that need to act on the way out implement on_headers / on_complete.
Both hooks run only for stages the request actually reached.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from starlette.datastructures import MutableHeaders
from starlette.requests import Request

ASGIApp = Callable[..., Awaitable[None]]


@dataclass
class Responded:
    response: ASGIApp


@dataclass
class Forward:
    error: Optional[BaseException] = None


Outcome = Union[Responded, Forward]


class Stage:
    """Base class; subclasses override handle()."""

    name = "stage"

    async def handle(self, request: Request) -> Outcome:
        return Forward()

    def on_headers(self, request: Request, headers: MutableHeaders) -> None:
        """Called once when the response starts."""

    def on_complete(self, request: Request, status: int) -> None:
        """Called once the response has been sent."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def state_get(request: Request, key: str, default: Any = None) -> Any:
    return getattr(request.state, key, default)
