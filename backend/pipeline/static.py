import asyncio
import os
import stat

from starlette.requests import Request
from starlette.staticfiles import StaticFiles

from pipeline.base import Forward, Outcome, Responded, Stage

INDEX_FILE = "index.html"


class StaticStage(Stage):
    """Serves files under the public directory; anything else passes through."""

    name = "static"

    def __init__(self, directory: str):
        self.directory = directory
        self.files = StaticFiles(directory=directory, check_dir=False)

    async def lookup(self, relative: str):
        full_path, stat_result = await asyncio.to_thread(self.files.lookup_path, relative)
        if stat_result is not None and stat.S_ISDIR(stat_result.st_mode):
            full_path, stat_result = await asyncio.to_thread(
                self.files.lookup_path, os.path.join(relative, INDEX_FILE)
            )
        if stat_result is None or not stat.S_ISREG(stat_result.st_mode):
            return None
        return full_path, stat_result

    async def handle(self, request: Request) -> Outcome:
        if request.method not in ("GET", "HEAD"):
            return Forward()

        # NUL bytes cannot name a file on disk
        if "\x00" in request.url.path:
            return Forward()
        relative = os.path.normpath(request.url.path.lstrip("/") or ".")
        if relative.startswith(".."):
            return Forward()

        found = await self.lookup(relative)
        if found is None:
            return Forward()
        full_path, stat_result = found
        return Responded(self.files.file_response(full_path, stat_result, request.scope))
