"""
Template rendering.

Templates are resolved as <views_dir>/<name>.<view_engine> and rendered by
Jinja2. Queued flash messages are consumed into every render as `messages`,
error pages included: a message pending when a request fails is shown on
that error page and not again.
"""

from typing import Any, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response


class Renderer:
    def __init__(self, views_dir: str, view_engine: str = "html"):
        self.views_dir = views_dir
        self.view_engine = view_engine.lstrip(".")
        self.templates = Jinja2Templates(directory=views_dir)

    def template_name(self, name: str) -> str:
        return f"{name}.{self.view_engine}"

    def render(
        self,
        request: Request,
        name: str,
        context: Optional[dict[str, Any]] = None,
        status_code: int = 200,
    ) -> Response:
        ctx: dict[str, Any] = {"messages": {}}
        flash = getattr(request.state, "flash", None)
        if flash is not None:
            ctx["messages"] = flash.consume()
        if context:
            ctx.update(context)
        return self.templates.TemplateResponse(
            request,
            self.template_name(name),
            ctx,
            status_code=status_code,
        )
