"""FastAPI app factory."""

from __future__ import annotations

import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mineralsight.config import settings
from mineralsight.engine.errors import MineralSightError
from mineralsight.engine.pipeline import load_stages

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.mineralsight_log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


def create_app() -> FastAPI:
    app = FastAPI(
        title="MineralSight",
        description="Microscope image analysis: sample segmentation, material classification, particles",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MineralSightError)
    async def _input_error(request: Request, exc: MineralSightError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    # Import all stage modules to trigger registration
    load_stages()

    from mineralsight.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
