"""HTTP activation surface for the remote client.

Exposes the activation boundary so a separate UI (or a simple script) can
switch discovery on and off and poll the receive status:

  GET  /remote/status         status, activation flag, known senders
  POST /remote/activate     503 when the multicast group is unavailable
  POST /remote/deactivate
  POST /remote/toggle       503 when activation fails

Start standalone with ``python -m traffic_remote --http-port 5120``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .controller import ActivationController
from .menu import LABELS
from .protocol import RemoteNetworkError


class SessionInfo(BaseModel):
    host: str
    port: int
    datagrams: int
    age_seconds: float = Field(ge=0)


class StatusResponse(BaseModel):
    status: str
    active: bool
    label: str
    sessions: list[SessionInfo] = Field(default_factory=list)


def _status_body(controller: ActivationController) -> StatusResponse:
    status = controller.get_status()
    now = controller.registry.now()
    sessions = [
        SessionInfo(
            host=s.address[0],
            port=s.address[1],
            datagrams=s.datagrams,
            age_seconds=max(0.0, s.age(now)),
        )
        for s in controller.sessions()
    ]
    return StatusResponse(
        status=status.value,
        active=controller.active,
        label=LABELS[status],
        sessions=sessions,
    )


def create_router(controller: ActivationController) -> APIRouter:
    router = APIRouter(prefix="/remote", tags=["remote"])

    @router.get("/status", response_model=StatusResponse)
    async def status():
        return _status_body(controller)

    @router.post("/activate", response_model=StatusResponse)
    async def activate():
        try:
            await controller.activate()
        except RemoteNetworkError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _status_body(controller)

    @router.post("/deactivate", response_model=StatusResponse)
    async def deactivate():
        await controller.deactivate()
        return _status_body(controller)

    @router.post("/toggle", response_model=StatusResponse)
    async def toggle():
        try:
            await controller.toggle()
        except RemoteNetworkError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _status_body(controller)

    return router


def create_app(controller: ActivationController) -> FastAPI:
    """Standalone app; the controller is deactivated on shutdown."""

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await controller.deactivate()

    app = FastAPI(title="Traffic Remote", version="0.1.0", lifespan=lifespan)
    app.include_router(create_router(controller))
    return app
