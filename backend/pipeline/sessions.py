"""
Server-side sessions keyed by a signed cookie.

The cookie holds only the session id, signed with itsdangerous. Every
request gets a session: a missing, tampered or unknown cookie yields a new
one, which is stored straight away and announced with Set-Cookie.
"""

import logging
from typing import Optional

from itsdangerous import BadSignature, Signer
from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from models.session import Session
from pipeline.base import Forward, Outcome, Stage
from store import SessionStore

logger = logging.getLogger(__name__)

SIGNER_SALT = "session.cookie"


class SessionStage(Stage):
    name = "session"

    def __init__(
        self,
        store: SessionStore,
        secret: str,
        cookie_name: str = "sess",
        secure: bool = False,
        path: str = "/",
        same_site: str = "lax",
    ):
        self.store = store
        self.signer = Signer(secret, salt=SIGNER_SALT)
        self.cookie_name = cookie_name
        self.secure = secure
        self.path = path
        self.same_site = same_site

    def sign(self, session_id: str) -> str:
        return self.signer.sign(session_id).decode("utf-8")

    def unsign(self, value: str) -> Optional[str]:
        try:
            return self.signer.unsign(value).decode("utf-8")
        except BadSignature:
            logger.debug("Rejected session cookie with a bad signature")
            return None

    def load(self, request: Request) -> Optional[Session]:
        raw = request.cookies.get(self.cookie_name)
        if not raw:
            return None
        session_id = self.unsign(raw)
        if session_id is None:
            return None
        return self.store.get(session_id)

    async def handle(self, request: Request) -> Outcome:
        session = self.load(request)
        request.state.session_is_new = session is None
        if session is None:
            session = self.store.create()
        request.state.session = session
        request.state.session_store = self.store
        return Forward()

    def on_headers(self, request: Request, headers: MutableHeaders) -> None:
        session = getattr(request.state, "session", None)
        if session is None or not getattr(request.state, "session_is_new", False):
            return
        if session.session_id not in self.store:
            # Destroyed while handling the request
            return

        flags = ["HttpOnly", f"Path={self.path}", f"SameSite={self.same_site}"]
        if self.secure:
            flags.append("Secure")
        value = f"{self.cookie_name}={self.sign(session.session_id)}; " + "; ".join(flags)
        headers.append("Set-Cookie", value)
