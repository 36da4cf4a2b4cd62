"""Tests for the pipeline orchestrator and whole-frame analysis."""

import numpy as np
import pytest

from mineralsight.engine.config import PipelineConfig
from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.errors import InvalidInputError
from mineralsight.engine.materials import parse_materials
from mineralsight.engine.pipeline import Pipeline, analyze_scene, create_pipeline
from mineralsight.engine.registry import AUXILIARY, Layer, StageRegistry, StageSpec
from mineralsight.engine.results import QualityStatus
from tests.conftest import GOLD_ONLY_DOC, make_blank_image


def _ctx(**kwargs):
    return AnalysisContext(image=make_blank_image(10), materials=parse_materials(GOLD_ONLY_DOC), **kwargs)


class TestOrchestrator:
    def test_runs_stages_in_order(self):
        reg = StageRegistry()
        calls = []
        reg.register(StageSpec(id="S0.01", layer=Layer.FEATURES, fn=lambda ctx: calls.append("a")))
        reg.register(
            StageSpec(id="S1.01", layer=Layer.SEGMENTATION, fn=lambda ctx: calls.append("b"), dependencies=["S0.01"])
        )
        ctx = Pipeline(registry=reg).run(_ctx())
        assert calls == ["a", "b"]
        assert ctx.completed_stages == {"S0.01", "S1.01"}

    def test_core_failure_propagates(self):
        reg = StageRegistry()

        def fail(ctx):
            raise ValueError("test error")

        reg.register(StageSpec(id="S0.01", layer=Layer.FEATURES, fn=fail))
        with pytest.raises(ValueError, match="test error"):
            Pipeline(registry=reg).run(_ctx())

    def test_auxiliary_failure_is_recorded(self):
        reg = StageRegistry()

        def fail(ctx):
            raise ValueError("preview broke")

        reg.register(StageSpec(id="S1.02", layer=Layer.SEGMENTATION, fn=fail, tags={AUXILIARY}))
        ctx = Pipeline(registry=reg).run(_ctx())
        assert "preview broke" in ctx.errors["S1.02"]
        assert "S1.02" not in ctx.completed_stages

    def test_auxiliary_stages_skipped_without_preview(self):
        reg = StageRegistry()
        calls = []
        reg.register(StageSpec(id="S1.02", layer=Layer.SEGMENTATION, fn=calls.append, tags={AUXILIARY}))
        Pipeline(registry=reg).run(_ctx(config=PipelineConfig(build_preview=False)))
        assert calls == []

    def test_streaming_progress(self):
        reg = StageRegistry()
        reg.register(StageSpec(id="S0.01", layer=Layer.FEATURES, fn=lambda ctx: None, description="features"))
        events = list(Pipeline(registry=reg).run_streaming(_ctx()))
        assert len(events) == 1
        assert events[0]["stage_id"] == "S0.01"
        assert events[0]["status"] == "ok"
        assert events[0]["total"] == 1

    def test_invalid_image_rejected_before_stages(self):
        reg = StageRegistry()
        calls = []
        reg.register(StageSpec(id="S0.01", layer=Layer.FEATURES, fn=calls.append))
        ctx = AnalysisContext(image=np.zeros((5, 5), dtype=np.uint8), materials=parse_materials(GOLD_ONLY_DOC))
        with pytest.raises(InvalidInputError):
            Pipeline(registry=reg).run(ctx)
        assert calls == []

    def test_incomplete_context_cannot_become_scene(self):
        with pytest.raises(RuntimeError, match="missing"):
            _ctx().to_scene()


class TestAnalyzeScene:
    def test_blank_frame_is_invalid(self, blank_image):
        scene = analyze_scene(blank_image)
        assert scene.mask.sample_count == 0
        assert scene.particles == []
        assert "MASK_NO_SAMPLE" in scene.consistency.codes()
        assert scene.summary.quality_status == QualityStatus.INVALID
        assert all(m.fraction == 0.0 for m in scene.summary.metals)

    def test_gold_patch(self, gold_patch_image, gold_materials):
        scene = analyze_scene(gold_patch_image, gold_materials, image_path="gold.png")
        assert (scene.width, scene.height) == (200, 200)
        assert scene.summary.diagnostics.foreground_fraction == pytest.approx(0.0625)
        assert len(scene.particles) == 1
        particle = scene.particles[0]
        assert (particle.material_id, particle.area_px) == ("Au", 2500)
        assert particle.confidence == pytest.approx(0.669, abs=1e-3)
        assert scene.labels.particle_id[100, 100] == 1
        assert scene.summary.metal("au").fraction == 1.0
        assert scene.summary.image_path == "gold.png"
        # sharp-edged flat patch reads as out of focus
        assert "FOCUS_CRITICAL" in scene.consistency.codes()
        assert "AU_HIGH" in scene.consistency.codes()
        assert scene.summary.quality_status == QualityStatus.PRELIMINARY
        assert scene.mask_preview is not None

    def test_deterministic(self, gold_patch_image, gold_materials):
        a = analyze_scene(gold_patch_image, gold_materials)
        b = analyze_scene(gold_patch_image, gold_materials)
        assert np.array_equal(a.mask.is_sample, b.mask.is_sample)
        assert np.array_equal(a.labels.material_index, b.labels.material_index)
        assert a.particles == b.particles
        assert a.consistency.codes() == b.consistency.codes()

    def test_without_preview(self, gold_patch_image, gold_materials):
        scene = analyze_scene(gold_patch_image, gold_materials, PipelineConfig(build_preview=False))
        assert scene.mask_preview is None
        assert len(scene.particles) == 1

    def test_calibration_sets_particle_area(self, gold_patch_image):
        materials = parse_materials(
            {**GOLD_ONLY_DOC, "calibration": {"scale": {"micrometer_slide_um_per_px": 2.0}}}
        )
        scene = analyze_scene(gold_patch_image, materials)
        assert scene.particles[0].area_um2 == pytest.approx(10_000)

    def test_requires_classifiable_materials(self, gold_patch_image):
        with pytest.raises(InvalidInputError):
            analyze_scene(gold_patch_image, parse_materials({"metais": [{"id": "Au"}]}))

    @pytest.mark.parametrize("image", [None, np.zeros((0, 4, 3), dtype=np.uint8)])
    def test_rejects_bad_images(self, image):
        with pytest.raises(InvalidInputError):
            analyze_scene(image)

    def test_create_pipeline_registers_all_stages(self):
        pipeline = create_pipeline()
        assert pipeline.registry.count == 9
