from __future__ import annotations
from typing import Optional
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from .settings import Settings
from .errors import DayZManagerError
from .orchestrator import Orchestrator

class StatusResult(BaseModel):
    ok: bool
    running: bool
    pid: Optional[int] = None

def create_app(settings: Settings, orch: Optional[Orchestrator] = None) -> FastAPI:
    app = FastAPI(title="DayZ Manager API", version="0.3.0")
    orch = orch or Orchestrator(settings)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/status", response_model=StatusResult)
    def status():
        try:
            return StatusResult(ok=True, **orch.status())
        except DayZManagerError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/config")
    def get_config():
        try:
            return orch.cfg.model_dump()
        except DayZManagerError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/plan")
    def plan():
        # Always dry-run; no side effects
        try:
            return orch.plan().to_dict()
        except DayZManagerError as e:
            raise HTTPException(status_code=500, detail=str(e))

    return app
