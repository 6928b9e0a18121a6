"""
Real-time messaging handle.

A Socket.IO server is created once at startup and handed to the router
factory. It serves /socket.io/ itself and passes every other request on to
the HTTP pipeline.
"""

import socketio


def create_messaging(cors_allowed_origins=None) -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_allowed_origins,
        logger=False,
        engineio_logger=False,
    )


def wrap(messaging: socketio.AsyncServer, http_app) -> socketio.ASGIApp:
    """Front the HTTP app with the Socket.IO endpoint."""
    return socketio.ASGIApp(messaging, other_asgi_app=http_app)
