"""S3.01 — Particles.

8-connected same-material clusters with shape, composition and score
aggregates. Particle ids are written back into the label grid.
"""

from __future__ import annotations

from dataclasses import replace

from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.particles import ParticleExtractor
from mineralsight.engine.registry import Layer, stage


@stage(
    id="S3.01",
    layer=Layer.PARTICLES,
    dependencies=["S2.01"],
    description="Extract particles from labeled pixels",
)
def particles(ctx: AnalysisContext) -> None:
    config = ctx.config.particles
    if config.um_per_px is None and ctx.materials.um_per_px:
        config = replace(config, um_per_px=ctx.materials.um_per_px)
    extraction = ParticleExtractor(config).extract(ctx.labels)
    ctx.labels = ctx.labels.with_particle_ids(extraction.particle_map)
    ctx.particles = extraction.particles
