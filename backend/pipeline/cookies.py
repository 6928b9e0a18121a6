import json
from typing import Any

from starlette.requests import Request

from pipeline.base import Forward, Outcome, Stage

JSON_PREFIX = "j:"


def decode_cookie(value: str) -> Any:
    """Values written as j:<json> come back as the decoded JSON value."""
    if not value.startswith(JSON_PREFIX):
        return value
    try:
        return json.loads(value[len(JSON_PREFIX):])
    except ValueError:
        return value


class CookieParserStage(Stage):
    name = "cookie_parser"

    async def handle(self, request: Request) -> Outcome:
        request.state.cookies = {name: decode_cookie(value) for name, value in request.cookies.items()}
        return Forward()
