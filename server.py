"""
8-Ball Web Server — FastAPI + WebSocket host for the GameController.

Runs the frame loop, broadcasting table state, game events and sound cues to
every connected client, and forwards client JSON commands to the controller.

Environment:
  EIGHTBALL_CONFIG     optional JSON file with GameConfig overrides; an
                       ai.iterations_per_frame of 0 is raised to
                       SEARCH_ITERATIONS_PER_FRAME so the loop keeps ticking
  EIGHTBALL_LOG_LEVEL  logging level for the entry point (default INFO)
"""

import asyncio
import json
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import GameConfig, load_config
from controller import GameController

logger = logging.getLogger(__name__)

# ── Controller ──────────────────────────────────────────────────────────────


# AI search iterations per frame when the config leaves it at 0 (whole search)
SEARCH_ITERATIONS_PER_FRAME = 1


def _make_controller() -> GameController:
    path = os.environ.get("EIGHTBALL_CONFIG")
    config = load_config(path) if path else GameConfig()
    if config.ai.iterations_per_frame == 0:
        config = config.with_ai(iterations_per_frame=SEARCH_ITERATIONS_PER_FRAME)
    return GameController(config)


ctrl = _make_controller()


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def game_loop():
    """Step the controller at ~60 fps and push one frame per step."""
    while True:
        now = time.perf_counter()

        ctrl.step()
        frame_msg = _build_frame_message()

        if clients:
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)

        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        await asyncio.sleep(sleep_time if sleep_time > 0 else 0)


def _build_frame_message() -> str:
    """Serialize state and drain both event queues into one frame."""
    events = list(ctrl.pending_events)
    ctrl.pending_events.clear()
    sounds = list(ctrl.physics_events)
    ctrl.physics_events.clear()

    frame = {
        "type": "frame",
        "state": ctrl.get_state(),
        "events": events,
        "sounds": sounds,
    }
    return json.dumps(frame, separators=(',', ':'))


def _init_message() -> str:
    cfg = ctrl.config
    return json.dumps({
        "type": "init",
        "table_width": cfg.table.width,
        "table_height": cfg.table.height,
        "cushion_width": cfg.table.cushion_width,
        "pocket_radius": cfg.table.pocket_radius,
        "pockets": [list(p) for p in cfg.table.pockets],
        "ball_radius": cfg.ball.radius,
    })


# ── HTTP ────────────────────────────────────────────────────────────────────

@app.get("/state")
async def get_state():
    return ctrl.get_state()


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)
    await ws.send_text(_init_message())

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("dropping non-JSON message")
                continue

            if isinstance(msg, dict) and msg.get("cmd") == "get_state":
                await ws.send_text(json.dumps({
                    "type": "state_json",
                    "data": ctrl.get_state_json(),
                }))
                continue

            ok = ctrl.execute_command(data)
            await ws.send_text(json.dumps({"type": "ack", "ok": ok}))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    from log_setup import setup_logging

    setup_logging()
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
