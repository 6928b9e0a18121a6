"""
Shared fixtures: a throwaway copy of the site (views + public) and an app
factory wired to a test router instead of routes.index.
"""

import os
import shutil

import pytest
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.testclient import TestClient

from bootstrap import create_app
from settings import BACKEND_ROOT, Settings


def build_test_router(messaging) -> APIRouter:
    router = APIRouter()
    router.messaging = messaging

    @router.get("/")
    async def index(request: Request):
        return request.state.views.render(request, "index", {"title": "Test"})

    @router.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @router.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail="I'm a teapot")

    @router.post("/echo")
    async def echo(request: Request):
        raw = await request.body()
        return JSONResponse({"body": request.state.body, "raw": raw.decode()})

    @router.get("/session")
    async def session(request: Request):
        current = request.state.session
        current.data["visits"] = current.data.get("visits", 0) + 1
        return {"session_id": current.session_id, "visits": current.data["visits"]}

    @router.post("/flash")
    async def flash(request: Request):
        request.state.flash.add("info", "Saved")
        return RedirectResponse("/", status_code=303)

    @router.post("/signup")
    async def signup(request: Request):
        v = request.state.validator
        v.check_body("email", "A valid email is required").not_empty().is_email()
        v.check_body("age", "Age must be 18-120").optional().is_int(min=18, max=120)
        v.sanitize_body("name").trim().escape()
        return {
            "errors": [issue.model_dump() for issue in v.errors()],
            "name": request.state.body.get("name"),
        }

    @router.get("/items/{item_id}")
    async def item(request: Request, item_id: str):
        v = request.state.validator
        v.check("item_id", "Item id must be a number").is_int()
        return {"errors": [issue.param for issue in v.errors()]}

    @router.get("/cookies")
    async def cookies(request: Request):
        return request.state.cookies

    return router


@pytest.fixture
def site(tmp_path):
    """Copy of the shipped views/ and public/ so compiled assets stay out of the repo."""
    for name in ("views", "public"):
        shutil.copytree(
            os.path.join(BACKEND_ROOT, name),
            tmp_path / name,
            ignore=shutil.ignore_patterns("*.css", "*.css.map"),
        )
    return tmp_path


@pytest.fixture
def make_settings(site):
    def _make(**overrides) -> Settings:
        values = {
            "env": "production",
            "views_dir": str(site / "views"),
            "public_dir": str(site / "public"),
            "favicon_path": str(site / "public" / "favicon.ico"),
            "stylesheet_src": str(site / "public"),
            "stylesheet_dest": str(site / "public"),
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_app(make_settings):
    def _make(**overrides):
        return create_app(make_settings(**overrides), router_factory=build_test_router)

    return _make


@pytest.fixture
def make_client(make_app):
    def _make(**overrides) -> TestClient:
        return TestClient(make_app(**overrides), raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
