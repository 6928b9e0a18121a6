"""
Server configuration.

Settings are read once at startup from the environment (a .env file is
loaded by main.py) and passed by reference to whatever needs them.

  PORT=3000
  APP_ENV=production
  SESSION_SECRET=...            # stable secret, cookies survive restarts
  SESSION_SECRET_FILE=.secret   # secret generated once, then reused
"""

import logging
import os
import secrets
from typing import Mapping, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

BACKEND_ROOT = os.path.dirname(os.path.abspath(__file__))

DEFAULT_PORT = 3000
DEFAULT_ROUTER = "routes.index:build_router"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    env: str = "development"

    # Views
    views_dir: str = os.path.join(BACKEND_ROOT, "views")
    view_engine: str = "html"       # template file extension

    # Static assets
    public_dir: str = os.path.join(BACKEND_ROOT, "public")
    favicon_path: str = os.path.join(BACKEND_ROOT, "public", "favicon.ico")
    stylesheet_src: str = os.path.join(BACKEND_ROOT, "public")
    stylesheet_dest: str = os.path.join(BACKEND_ROOT, "public")
    stylesheet_source_map: bool = True

    # Body parsing
    body_limit: int = 100 * 1024    # bytes
    parameter_limit: int = 1000

    # Sessions
    session_cookie: str = "sess"
    session_cookie_secure: bool = False
    session_secret: Optional[str] = None
    session_secret_file: Optional[str] = None

    router: str = DEFAULT_ROUTER
    log_level: str = "INFO"

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        values: dict = {}
        mapping = {
            "PORT": "port",
            "HOST": "host",
            "APP_ENV": "env",
            "VIEWS_DIR": "views_dir",
            "PUBLIC_DIR": "public_dir",
            "FAVICON_PATH": "favicon_path",
            "SESSION_COOKIE": "session_cookie",
            "SESSION_SECRET": "session_secret",
            "SESSION_SECRET_FILE": "session_secret_file",
            "ROUTER": "router",
            "LOG_LEVEL": "log_level",
        }
        for var, field in mapping.items():
            raw = env.get(var)
            if raw:
                values[field] = raw

        if "SESSION_COOKIE_SECURE" in env:
            values["session_cookie_secure"] = env["SESSION_COOKIE_SECURE"].strip().lower() in _TRUTHY

        # Assets follow PUBLIC_DIR unless pointed elsewhere explicitly
        public_dir = values.get("public_dir")
        if public_dir:
            values.setdefault("favicon_path", os.path.join(public_dir, "favicon.ico"))
            values.setdefault("stylesheet_src", public_dir)
            values.setdefault("stylesheet_dest", public_dir)

        return cls(**values)


def resolve_session_secret(settings: Settings) -> str:
    """
    Pick the key used to sign session cookies.

    Order: SESSION_SECRET, then SESSION_SECRET_FILE (created on first start),
    then a fresh secret for this process only.
    """
    if settings.session_secret:
        return settings.session_secret

    path = settings.session_secret_file
    if path:
        if os.path.exists(path):
            with open(path) as f:
                secret = f.read().strip()
            if secret:
                return secret
        secret = secrets.token_urlsafe(32)
        with open(path, "w") as f:
            f.write(secret)
        os.chmod(path, 0o600)
        logger.info("Generated session secret at %s", path)
        return secret

    logger.warning(
        "No SESSION_SECRET configured, using an ephemeral secret; "
        "sessions will not survive a restart"
    )
    return secrets.token_urlsafe(32)
