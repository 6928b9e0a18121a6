from pipeline.access_log import AccessLogStage
from pipeline.base import Forward, Responded, Stage
from pipeline.body import BodyParserStage
from pipeline.cookies import CookieParserStage
from pipeline.errors import ErrorRenderer
from pipeline.favicon import FaviconStage
from pipeline.flash import Flash, FlashStage
from pipeline.not_found import NotFoundStage
from pipeline.router import RouterStage, load_router_factory
from pipeline.runner import Pipeline
from pipeline.sessions import SessionStage
from pipeline.static import StaticStage
from pipeline.stylesheets import StylesheetStage
from pipeline.validation import ValidationStage, Validator

__all__ = [
    "AccessLogStage",
    "BodyParserStage",
    "CookieParserStage",
    "ErrorRenderer",
    "FaviconStage",
    "Flash",
    "FlashStage",
    "Forward",
    "NotFoundStage",
    "Pipeline",
    "Responded",
    "RouterStage",
    "SessionStage",
    "Stage",
    "StaticStage",
    "StylesheetStage",
    "ValidationStage",
    "Validator",
    "load_router_factory",
]
