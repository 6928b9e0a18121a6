from starlette.requests import Request

from errors import NotFound
from pipeline.base import Forward, Outcome, Stage


class NotFoundStage(Stage):
    """Nothing upstream answered: forward a 404."""

    name = "not_found"

    async def handle(self, request: Request) -> Outcome:
        return Forward(NotFound())
