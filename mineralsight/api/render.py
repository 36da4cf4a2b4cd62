"""POST /api/render/*: overlay images for a freshly analyzed frame."""

from __future__ import annotations

import time
from dataclasses import replace

from fastapi import APIRouter, Depends

from mineralsight.api.analyze import run_analysis
from mineralsight.dependencies import get_materials, get_settings
from mineralsight.engine.config import RenderConfig
from mineralsight.engine.materials import MaterialsConfig
from mineralsight.engine.phase_map import phase_map, target_heatmap
from mineralsight.engine.selective import SelectiveOverlayRenderer
from mineralsight.models.requests import PhaseMapRequest, SelectiveRenderRequest
from mineralsight.models.responses import RenderResponse, SelectiveSummaryModel
from mineralsight.utils.codec import encode_png

router = APIRouter(prefix="/render")


@router.post("/selective", response_model=RenderResponse)
async def render_selective(
    req: SelectiveRenderRequest,
    materials: MaterialsConfig = Depends(get_materials),
    settings=Depends(get_settings),
) -> RenderResponse:
    start = time.perf_counter()
    scene, _ = await run_analysis(req, materials, settings.um_per_px)
    base = scene.labels.rgb
    renderer = SelectiveOverlayRenderer(RenderConfig(confidence_threshold=req.confidence_threshold))

    summary = renderer.summarize_target(scene.labels, req.target_material, scene.particles)
    if req.mode == "xray":
        image = None
        rendered = renderer.build_selective_xray_view(base, scene.labels, req.target_material)
        if rendered is not None:
            image, xray_summary = rendered
            summary = replace(xray_summary, particle_count=summary.particle_count)
    elif req.mode == "au_pgm":
        image = renderer.build_selective_au_pgm_view(base, scene.labels)
    elif req.mode == "background":
        image = renderer.build_background_masked_view(base, scene.labels)
    else:
        image = renderer.build_selective_view(base, scene.labels, req.target_material)

    return RenderResponse(
        image_base64=encode_png(image) if image is not None else None,
        width=scene.width,
        height=scene.height,
        summary=SelectiveSummaryModel.from_summary(summary),
        processing_time_ms=round((time.perf_counter() - start) * 1000, 1),
    )


@router.post("/phase-map", response_model=RenderResponse)
async def render_phase_map(
    req: PhaseMapRequest,
    materials: MaterialsConfig = Depends(get_materials),
    settings=Depends(get_settings),
) -> RenderResponse:
    start = time.perf_counter()
    scene, _ = await run_analysis(req, materials, settings.um_per_px)
    if req.target_material:
        image = target_heatmap(scene.labels.rgb, scene.labels, req.target_material, req.opacity)
    else:
        image = phase_map(scene.labels)
    return RenderResponse(
        image_base64=encode_png(image),
        width=scene.width,
        height=scene.height,
        processing_time_ms=round((time.perf_counter() - start) * 1000, 1),
    )
