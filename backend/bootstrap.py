"""
Application assembly.

create_app() builds everything once, in order:
  renderer -> session store + secret -> messaging handle -> stages -> pipeline
and returns an Application, which is the ASGI entrypoint uvicorn serves.

Stage order is fixed; each stage may end the request early:

  favicon -> access log -> body parser -> cookie parser -> stylesheets ->
  session -> flash -> validation -> static -> router -> not found
  (errors from any of them -> error renderer)
"""

import logging
from typing import Optional

import uvicorn

from messaging import create_messaging, wrap
from pipeline import (
    AccessLogStage,
    BodyParserStage,
    CookieParserStage,
    ErrorRenderer,
    FaviconStage,
    FlashStage,
    NotFoundStage,
    Pipeline,
    RouterStage,
    SessionStage,
    Stage,
    StaticStage,
    StylesheetStage,
    ValidationStage,
    load_router_factory,
)
from pipeline.router import RouterFactory
from rendering import Renderer
from settings import Settings, resolve_session_secret
from store import SessionStore

logger = logging.getLogger(__name__)


class Application:
    """Everything the server holds for its lifetime, built once at startup."""

    def __init__(self, settings: Settings, router_factory: Optional[RouterFactory] = None):
        self.settings = settings
        self.views = Renderer(settings.views_dir, settings.view_engine)
        self.session_store = SessionStore()
        self.session_secret = resolve_session_secret(settings)
        self.messaging = create_messaging()
        self.error_renderer = ErrorRenderer(self.views, expose_detail=settings.is_development)

        factory = router_factory or load_router_factory(settings.router)
        self.router = factory(self.messaging)

        self.stages = build_stages(self)
        self.pipeline = Pipeline(
            self.stages,
            self.error_renderer,
            state={"views": self.views, "settings": settings},
        )
        self.asgi = wrap(self.messaging, self.pipeline)

    async def __call__(self, scope, receive, send) -> None:
        await self.asgi(scope, receive, send)

    def listen(self) -> None:
        logger.info("Listening on %s:%d (%s)", self.settings.host, self.settings.port, self.settings.env)
        uvicorn.run(
            self,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
            access_log=False,
        )


def build_stages(app: Application) -> list[Stage]:
    settings = app.settings
    return [
        FaviconStage(settings.favicon_path),
        AccessLogStage(),
        BodyParserStage(limit=settings.body_limit, parameter_limit=settings.parameter_limit),
        CookieParserStage(),
        StylesheetStage(
            settings.stylesheet_src,
            settings.stylesheet_dest,
            source_map=settings.stylesheet_source_map,
        ),
        SessionStage(
            app.session_store,
            app.session_secret,
            cookie_name=settings.session_cookie,
            secure=settings.session_cookie_secure,
        ),
        FlashStage(),
        ValidationStage(),
        StaticStage(settings.public_dir),
        RouterStage(app.router, app.error_renderer),
        NotFoundStage(),
    ]


def create_app(settings: Optional[Settings] = None, router_factory: Optional[RouterFactory] = None) -> Application:
    return Application(settings or Settings.from_env(), router_factory=router_factory)
