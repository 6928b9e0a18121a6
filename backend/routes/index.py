import logging

import socketio
from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)


def build_router(messaging: socketio.AsyncServer) -> APIRouter:
    """
    Default routes: the landing page.
    Real applications point ROUTER at their own factory.
    """
    router = APIRouter(tags=["index"])

    @messaging.event
    async def connect(sid, environ):
        logger.debug("Socket %s connected", sid)

    @router.get("/")
    async def index(request: Request):
        return request.state.views.render(request, "index", {"title": "Wicket"})

    return router
