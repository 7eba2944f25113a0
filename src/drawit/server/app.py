from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TypeVar

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError

from drawit.protocol.messages import ActionRequest, JoinRequest, LeaveRequest

from .config import get_settings
from .errors import GameError, PayloadTooLarge, StateConflict, UnknownPlayer, ValidationFailed
from .game import Game, get_game

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _configure_logging() -> None:
    settings = get_settings()
    level = logging.DEBUG if settings.debug_log_msgs else logging.INFO
    pkg = logging.getLogger("drawit")
    pkg.setLevel(level)
    if not pkg.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        pkg.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    _configure_logging()
    yield
    # close every open stream so keep-alive tasks stop with the process
    game_factory = app.dependency_overrides.get(get_game, get_game)
    game_factory().shutdown()


app = FastAPI(lifespan=lifespan)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    # State conflicts are a normal answer to the requester, not an HTTP failure.
    if isinstance(exc, StateConflict):
        return JSONResponse({"ok": False, "message": exc.message})
    return JSONResponse({"ok": False, "message": exc.message}, status_code=exc.status_code)


async def _read_body(request: Request, model: type[M], max_bytes: int) -> M:
    """Parse a JSON body regardless of Content-Type (navigator.sendBeacon posts text/plain)."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLarge()
    raw = await request.body()
    if len(raw) > max_bytes:
        raise PayloadTooLarge()
    if not raw.strip():
        raw = b"{}"
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise ValidationFailed() from e


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/api/join")
async def join(request: Request, game: Game = Depends(get_game)):
    body = await _read_body(request, JoinRequest, game.settings.max_body_bytes)
    return game.join(body.name)


@app.post("/api/leave")
async def leave(request: Request, game: Game = Depends(get_game)):
    body = await _read_body(request, LeaveRequest, game.settings.max_body_bytes)
    return {"ok": True, "removed": game.leave(body.playerId)}


@app.post("/api/action")
async def action(request: Request, game: Game = Depends(get_game)):
    body = await _read_body(request, ActionRequest, game.settings.max_body_bytes)
    return game.act(body.playerId, body.type, body.payload)


@app.get("/api/stream")
async def stream(playerId: str | None = None, game: Game = Depends(get_game)):
    if playerId is None:
        raise UnknownPlayer()
    channel = game.connect(playerId)

    async def events() -> AsyncIterator[str]:
        try:
            # flush headers right away so EventSource reports the stream as open
            yield ": connected\n\n"
            async for frame in channel.frames():
                yield frame
        finally:
            game.disconnect(playerId, channel)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )


def main() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
