"""FastAPI app that wraps the teleop service and hosts the vision feed."""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
from contextlib import asynccontextmanager
from typing import Dict, List, Mapping, Optional, Set

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from teleop_lib.config import TeleopConfig
from teleop_lib.service import TeleopService

logger = logging.getLogger(__name__)


class StatusBroadcaster:
    """Pushes teleop status to websocket clients whenever the loop has advanced.

    Each payload carries a ``seq`` counter. Nothing is sent while the loop is
    stalled or stopped, so clients can spot a dead loop by the silence.
    """

    def __init__(self, service: TeleopService, interval: float = 0.5) -> None:
        self._service = service
        self._interval = interval
        self._clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task[None]] = None
        self._seq = 0
        self._last_ticks: Optional[int] = None

    async def register(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.add(websocket)
            if self._task is None:
                self._task = asyncio.create_task(self._run(), name="teleop-status")

    async def unregister(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)
            if not self._clients and self._task is not None:
                self._task.cancel()
                self._task = None

    async def shutdown(self) -> None:
        async with self._lock:
            clients, self._clients = list(self._clients), set()
            task, self._task = self._task, None
        for ws in clients:
            try:
                await ws.close()
            except Exception:  # pragma: no cover - best effort
                logger.debug("Websocket already closed", exc_info=True)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                async with self._lock:
                    clients = list(self._clients)
                if not clients:
                    return
                status = await run_in_threadpool(self._service.status)
                if status["ticks"] == self._last_ticks:
                    continue
                self._last_ticks = status["ticks"]
                self._seq += 1
                await self._push(clients, {"seq": self._seq, **status})
        except asyncio.CancelledError:
            pass

    async def _push(self, clients: List[WebSocket], payload: Dict[str, object]) -> None:
        stale: List[WebSocket] = []
        for ws in clients:
            try:
                await ws.send_json(payload)
            except WebSocketDisconnect:
                stale.append(ws)
            except Exception:  # pragma: no cover - logged for diagnostics
                logger.exception("Failed to push teleop status")
                stale.append(ws)
        if stale:
            async with self._lock:
                self._clients.difference_update(stale)


# --- FastAPI wiring ----------------------------------------------------------

_teleop_service: Optional[TeleopService] = None
_broadcaster: Optional[StatusBroadcaster] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _teleop_service, _broadcaster
    service = create_teleop_service()
    await run_in_threadpool(service.start)
    _teleop_service = service
    _broadcaster = create_broadcaster(service)
    logger.info("Teleop service started")
    try:
        yield
    finally:
        if _broadcaster:
            await _broadcaster.shutdown()
        if _teleop_service:
            await run_in_threadpool(_teleop_service.shutdown)
        _broadcaster = None
        _teleop_service = None
        logger.info("Teleop service stopped")


app = FastAPI(title="Teleop Control API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("TELEOP_API_CORS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Auth --------------------------------------------------------------------


def get_configured_token() -> Optional[str]:
    token = os.getenv("TELEOP_API_TOKEN")
    return token.strip() if token else None


def _presented_tokens(headers: Mapping[str, str], query: Mapping[str, str]) -> List[str]:
    """Bearer header first, then ``?token=`` (browsers cannot set WS headers)."""
    found = []
    scheme, _, value = headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and value:
        found.append(value)
    if query.get("token"):
        found.append(query["token"])
    return found


def is_authorized(headers: Mapping[str, str], query: Mapping[str, str]) -> bool:
    expected = get_configured_token()
    if not expected:
        return True
    return any(secrets.compare_digest(token, expected) for token in _presented_tokens(headers, query))


async def require_token(request: Request) -> None:
    if not is_authorized(request.headers, request.query_params):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def create_teleop_service() -> TeleopService:
    config = TeleopConfig.from_env()
    dry_run = _env_flag("TELEOP_DRY_RUN")
    logger.info(
        "Initialising teleop service: channel=%s period=%.3fs dry_run=%s",
        config.devices.can_channel,
        config.period_s,
        dry_run,
    )
    return TeleopService(config, status_hook=logger.info, dry_run=dry_run)


def create_broadcaster(service: TeleopService) -> StatusBroadcaster:
    interval = float(os.getenv("TELEOP_STATUS_INTERVAL", "0.5"))
    return StatusBroadcaster(service, interval=interval)


async def get_teleop_service() -> TeleopService:
    if _teleop_service is None:
        raise HTTPException(status_code=503, detail="Teleop service not ready")
    return _teleop_service


async def get_broadcaster() -> StatusBroadcaster:
    if _broadcaster is None:
        raise HTTPException(status_code=503, detail="Broadcaster not ready")
    return _broadcaster


# --- Request models ----------------------------------------------------------


class VisionUpdate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    tx: Optional[float] = Field(None, description="Horizontal offset to target in degrees")
    ty: Optional[float] = Field(None, description="Vertical offset to target in degrees")
    ta: Optional[float] = Field(None, description="Target area, percent of image")
    ts: Optional[float] = Field(None, description="Target skew in degrees")
    tv: Optional[float] = Field(None, description="1 when a target is visible, else 0")

    def to_table(self) -> Dict[str, float]:
        return {key: value for key, value in self.model_dump().items() if value is not None}


# --- REST endpoints ----------------------------------------------------------


@app.get("/status", tags=["status"], dependencies=[Depends(require_token)])
async def get_status(service: TeleopService = Depends(get_teleop_service)) -> Dict[str, object]:
    # status() waits on the loop lock, which is held across CAN sends.
    return await run_in_threadpool(service.status)


@app.get("/vision", tags=["vision"], dependencies=[Depends(require_token)])
async def get_vision(service: TeleopService = Depends(get_teleop_service)) -> Dict[str, float]:
    return service.vision.snapshot()


@app.put("/vision", tags=["vision"], dependencies=[Depends(require_token)])
async def put_vision(
    request: VisionUpdate, service: TeleopService = Depends(get_teleop_service)
) -> Dict[str, str]:
    service.vision.update(request.to_table())
    return {"status": "ok"}


@app.delete("/vision", tags=["vision"], dependencies=[Depends(require_token)])
async def clear_vision(service: TeleopService = Depends(get_teleop_service)) -> Dict[str, str]:
    service.vision.clear()
    return {"status": "ok"}


# --- WebSocket endpoints -----------------------------------------------------


@app.websocket("/ws/status")
async def status_stream(
    websocket: WebSocket,
    broadcaster: StatusBroadcaster = Depends(get_broadcaster),
    service: TeleopService = Depends(get_teleop_service),
) -> None:
    if not is_authorized(websocket.headers, websocket.query_params):
        await websocket.close(code=4401, reason="Unauthorized")
        return
    await websocket.accept()
    await websocket.send_json(await run_in_threadpool(service.status))
    await broadcaster.register(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.unregister(websocket)


def create_app() -> FastAPI:
    """Return configured FastAPI application (handy for uvicorn)."""
    return app


__all__ = [
    "app",
    "create_app",
    "StatusBroadcaster",
    "create_teleop_service",
    "create_broadcaster",
    "is_authorized",
]
