"""
On-demand stylesheet compilation.

A request for /some/path.css looks for <src>/some/path.sass (indented
syntax). When the compiled <dest>/some/path.css is missing or older than
its source it is rebuilt with libsass before the request moves on, so the
static stage serves a fresh file. Requests without a matching source pass
through untouched.
"""

import asyncio
import logging
import os
import tempfile
from typing import Optional

import sass
from starlette.requests import Request

from pipeline.base import Forward, Outcome, Stage

logger = logging.getLogger(__name__)

SOURCE_EXTENSION = ".sass"


def _inside(root: str, path: str) -> bool:
    root = os.path.realpath(root)
    return os.path.commonpath([root, os.path.realpath(path)]) == root


def _write_atomic(path: str, text: str) -> None:
    """Readers see either the old file or the complete new one."""
    fd, tmp = tempfile.mkstemp(dir=os.path.dirname(path), prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
        os.chmod(tmp, 0o644)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise


class StylesheetStage(Stage):
    name = "stylesheets"

    def __init__(self, src: str, dest: str, source_map: bool = True, output_style: str = "nested"):
        self.src = src
        self.dest = dest
        self.source_map = source_map
        self.output_style = output_style

    def resolve(self, url_path: str) -> Optional[tuple[str, str]]:
        """Map a .css URL to (source, compiled) paths, or None when it is not ours."""
        if not url_path.endswith(".css") or "\x00" in url_path:
            return None
        relative = url_path.lstrip("/")[: -len(".css")]
        source = os.path.join(self.src, relative + SOURCE_EXTENSION)
        css = os.path.join(self.dest, relative + ".css")
        if not _inside(self.src, source) or not _inside(self.dest, css):
            return None
        return source, css

    @staticmethod
    def is_stale(source: str, css: str) -> bool:
        if not os.path.exists(css):
            return True
        return os.path.getmtime(source) > os.path.getmtime(css)

    def compile(self, source: str, css: str) -> None:
        map_path = css + ".map"
        if self.source_map:
            output, source_map = sass.compile(
                filename=source,
                output_style=self.output_style,
                source_map_filename=map_path,
                output_filename_hint=css,
            )
        else:
            output = sass.compile(filename=source, output_style=self.output_style)
            source_map = None

        os.makedirs(os.path.dirname(css), exist_ok=True)
        if source_map is not None:
            _write_atomic(map_path, source_map)
        _write_atomic(css, output)
        logger.info("Compiled %s -> %s", source, css)

    async def handle(self, request: Request) -> Outcome:
        if request.method not in ("GET", "HEAD"):
            return Forward()

        paths = self.resolve(request.url.path)
        if paths is None:
            return Forward()
        source, css = paths
        if not os.path.isfile(source):
            return Forward()

        if self.is_stale(source, css):
            try:
                await asyncio.to_thread(self.compile, source, css)
            except sass.CompileError as exc:
                logger.warning("Stylesheet compile failed for %s: %s", source, exc)
                return Forward(exc)
        return Forward()
