import hashlib
import logging
import os
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from pipeline.base import Forward, Outcome, Responded, Stage

logger = logging.getLogger(__name__)

FAVICON_PATH = "/favicon.ico"
ALLOWED_METHODS = "GET, HEAD, OPTIONS"
ONE_YEAR = 60 * 60 * 24 * 365


class FaviconStage(Stage):
    """Answers /favicon.ico from a file read once and kept in memory."""

    name = "favicon"

    def __init__(self, path: str, max_age: int = ONE_YEAR):
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Favicon not found: {path}")
        self.path = path
        self.max_age = max_age
        self._icon: Optional[bytes] = None
        self._etag: Optional[str] = None

    def _load(self) -> None:
        with open(self.path, "rb") as f:
            self._icon = f.read()
        self._etag = '"%s"' % hashlib.md5(self._icon).hexdigest()
        logger.debug("Loaded favicon from %s (%d bytes)", self.path, len(self._icon))

    async def handle(self, request: Request) -> Outcome:
        if request.url.path != FAVICON_PATH:
            return Forward()

        if request.method not in ("GET", "HEAD"):
            status = 200 if request.method == "OPTIONS" else 405
            return Responded(Response(status_code=status, headers={"Allow": ALLOWED_METHODS}))

        if self._icon is None:
            self._load()

        headers = {
            "Cache-Control": f"public, max-age={self.max_age}",
            "ETag": self._etag,
        }
        if request.headers.get("if-none-match") == self._etag:
            return Responded(Response(status_code=304, headers=headers))
        return Responded(Response(self._icon, media_type="image/x-icon", headers=headers))
