"""
JSON and URL-encoded body parsing.

The parsed payload is stored on request.state.body ({} when the request
carries nothing we parse). The raw bytes are kept on request.state.raw_body
so the runner can replay them to the route that finally handles the request.

Failures are forwarded as HTTPError:
  400 entity.parse.failed   - malformed or too deeply nested JSON, or a JSON scalar at top level
  413 entity.too.large      - body over the configured limit
  413 parameters.too.many   - too many URL-encoded fields
  415 charset.unsupported   - anything other than UTF-8
"""

import json
from typing import Any
from urllib.parse import parse_qsl

from starlette.requests import Request

from errors import HTTPError
from pipeline.base import Forward, Outcome, Stage

JSON_TYPE = "application/json"
URLENCODED_TYPE = "application/x-www-form-urlencoded"
SUPPORTED_CHARSETS = {"utf-8", "utf8"}


def _media_type(request: Request) -> tuple[str, dict[str, str]]:
    raw = request.headers.get("content-type", "")
    parts = [p.strip() for p in raw.split(";")]
    params = {}
    for part in parts[1:]:
        key, _, value = part.partition("=")
        params[key.strip().lower()] = value.strip().strip('"')
    return parts[0].lower(), params


def _is_json(media_type: str) -> bool:
    return media_type == JSON_TYPE or (media_type.startswith("application/") and media_type.endswith("+json"))


class BodyParserStage(Stage):
    name = "body_parser"

    def __init__(self, limit: int = 100 * 1024, parameter_limit: int = 1000):
        self.limit = limit
        self.parameter_limit = parameter_limit

    async def handle(self, request: Request) -> Outcome:
        request.state.body = {}

        media_type, params = _media_type(request)
        is_json = _is_json(media_type)
        if not is_json and media_type != URLENCODED_TYPE:
            return Forward()

        charset = params.get("charset", "utf-8").lower()
        if charset not in SUPPORTED_CHARSETS:
            return Forward(HTTPError(415, f'unsupported charset "{charset.upper()}"', type="charset.unsupported"))

        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.limit:
            return Forward(HTTPError(413, "request entity too large", type="entity.too.large"))

        raw = bytearray()
        async for chunk in request.stream():
            raw.extend(chunk)
            if len(raw) > self.limit:
                return Forward(HTTPError(413, "request entity too large", type="entity.too.large"))
        request.state.raw_body = bytes(raw)

        if not raw:
            return Forward()

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            return Forward(HTTPError(400, "Request body is not valid UTF-8", type="entity.parse.failed"))

        if is_json:
            try:
                request.state.body = self._parse_json(text)
            except (ValueError, RecursionError) as exc:
                return Forward(HTTPError(400, f"Malformed JSON body: {exc}", type="entity.parse.failed"))
        else:
            try:
                request.state.body = self._parse_urlencoded(text)
            except ValueError:
                return Forward(HTTPError(413, "too many parameters", type="parameters.too.many"))
        return Forward()

    @staticmethod
    def _parse_json(text: str) -> Any:
        stripped = text.strip()
        if not stripped:
            return {}
        # Only objects and arrays are accepted at the top level
        if stripped[0] not in "{[":
            raise ValueError(f"unexpected token {stripped[0]!r} at position 0")
        return json.loads(stripped)

    def _parse_urlencoded(self, text: str) -> dict[str, Any]:
        body: dict[str, Any] = {}
        pairs = parse_qsl(text, keep_blank_values=True, max_num_fields=self.parameter_limit)
        for key, value in pairs:
            if key in body:
                existing = body[key]
                if isinstance(existing, list):
                    existing.append(value)
                else:
                    body[key] = [existing, value]
            else:
                body[key] = value
        return body
