from __future__ import annotations

import logging
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path

import jinja2
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from sticker_clone_bot.ledger.factory import build_redis
from sticker_clone_bot.ledger.store import Ledger

from . import queries

logger = logging.getLogger(__name__)

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL", "redis://127.0.0.1:6379/0")
REDIS_PREFIX = (os.getenv("REDIS_PREFIX") or "").strip()


class AppState:
    ledger: Ledger | None = None


app_state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_state.ledger = Ledger(build_redis(REDIS_URL), prefix=REDIS_PREFIX)
    await app_state.ledger.ping()
    yield
    if app_state.ledger is not None:
        await app_state.ledger.redis.aclose()
        app_state.ledger = None


app = FastAPI(title="Sticker Clone Bot Statistics", lifespan=lifespan)

templates_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))
templates.env.loader = jinja2.FileSystemLoader(str(templates_dir), encoding="utf-8")


def _store_unavailable() -> JSONResponse:
    return JSONResponse({"error": "store not initialized"}, status_code=503)


@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    if not app_state.ledger:
        return HTMLResponse("Store not initialized", status_code=503)
    stats = await queries.get_statistics(app_state.ledger)
    return templates.TemplateResponse(request, "index.html", {"stats": stats})


@app.get("/statistics")
async def statistics():
    if not app_state.ledger:
        return _store_unavailable()
    return await queries.get_statistics(app_state.ledger)


@app.get("/users")
async def users(limit: int = 100, offset: int = 0):
    if not app_state.ledger:
        return _store_unavailable()
    return await queries.get_user_ids(app_state.ledger, limit=limit, offset=offset)


@app.get("/users/{user_id:int}")
async def user_detail(user_id: int):
    if not app_state.ledger:
        return _store_unavailable()
    data = await queries.get_user_details(app_state.ledger, user_id)
    if data is None:
        return JSONResponse({"error": "user not found"}, status_code=404)
    return data


@app.get("/health")
async def health():
    if not app_state.ledger:
        return _store_unavailable()
    started = time.perf_counter()
    try:
        await app_state.ledger.ping()
    except Exception as exc:
        logger.exception("Stats viewer health check failed")
        return JSONResponse({"store": f"Error: {exc}"}, status_code=503)
    return {"store": "Connected", "ping_ms": round((time.perf_counter() - started) * 1000, 2)}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def run():
    import uvicorn

    host = os.getenv("STATS_VIEWER_HOST", "127.0.0.1").strip() or "127.0.0.1"
    try:
        port = int((os.getenv("STATS_VIEWER_PORT") or "4000").strip())
    except ValueError:
        port = 4000
    port = max(1, min(port, 65535))
    uvicorn.run("stats_viewer.app:app", host=host, port=port, reload=_env_bool("STATS_VIEWER_RELOAD", False))


if __name__ == "__main__":
    run()
