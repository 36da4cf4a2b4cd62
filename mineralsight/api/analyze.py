"""POST /api/analyze"""

from __future__ import annotations

import asyncio
import functools
import time

from fastapi import APIRouter, Depends, HTTPException

from mineralsight.dependencies import get_materials, get_settings
from mineralsight.engine.config import PipelineConfig
from mineralsight.engine.materials import MaterialsConfig, load_materials
from mineralsight.engine.pipeline import analyze_scene
from mineralsight.engine.results import FullSceneAnalysis
from mineralsight.models.requests import AnalyzeRequest
from mineralsight.models.responses import AnalyzeResponse
from mineralsight.utils.codec import ImageDecodeError, decode_image

router = APIRouter()


async def run_analysis(
    req: AnalyzeRequest, default_materials: MaterialsConfig, um_per_px: float = 0.0
) -> tuple[FullSceneAnalysis, float]:
    """Decode, analyze in a worker thread, and time the request."""
    start = time.perf_counter()
    try:
        image = decode_image(req.image_base64)
    except ImageDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    materials = load_materials(req.materials) if req.materials is not None else default_materials
    config = req.options.apply(PipelineConfig())
    if config.particles.um_per_px is None and um_per_px > 0:
        config = config.with_overrides(um_per_px=um_per_px)

    loop = asyncio.get_running_loop()
    scene = await loop.run_in_executor(
        None,
        functools.partial(analyze_scene, image, materials, config, image_path=req.image_name),
    )
    elapsed = (time.perf_counter() - start) * 1000
    return scene, round(elapsed, 1)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    req: AnalyzeRequest,
    materials: MaterialsConfig = Depends(get_materials),
    settings=Depends(get_settings),
) -> AnalyzeResponse:
    scene, elapsed = await run_analysis(req, materials, settings.um_per_px)
    return AnalyzeResponse.from_scene(scene, elapsed, include_particles=req.include_particles)
