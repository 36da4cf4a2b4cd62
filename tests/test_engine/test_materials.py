"""Tests for the materials configuration and pipeline options."""

import pytest

from mineralsight.engine.config import PipelineConfig
from mineralsight.engine.errors import MaterialsConfigError
from mineralsight.engine.labels import MaterialType
from mineralsight.engine.materials import load_materials, parse_hsv_range, parse_materials


class TestBundledMaterials:
    def test_sections(self):
        materials = load_materials()
        assert len(materials.of_type(MaterialType.METAL)) == 6
        assert len(materials.of_type(MaterialType.CRYSTAL)) == 3
        assert len(materials.of_type(MaterialType.GEM)) == 3
        assert materials.ids[0] == "Au"

    def test_groups(self):
        materials = load_materials()
        assert materials.get("Au").is_noble
        assert materials.get("pt").is_pgm
        assert not materials.get("Cu").is_noble

    def test_percent_ranges_scaled(self):
        hsv = load_materials().get("Ag").hsv
        assert (hsv.s_min, hsv.s_max) == (0.0, 0.15)
        assert (hsv.v_min, hsv.v_max) == (0.7, 1.0)

    def test_wrapping_hue(self):
        assert load_materials().get("Rubi").hsv.wraps


class TestParsing:
    def test_missing_hsv_is_not_classifiable(self):
        materials = parse_materials({"metais": [{"id": "Au"}, {"id": "Pt", "optico": {"cor_hsv": {"h": [0, 360]}}}]})
        assert materials.ids == ["Au", "Pt"]
        assert materials.classifiable() == []

    def test_duplicate_ids_ignored(self):
        doc = {
            "metais": [
                {"id": "Au", "nome": "Ouro", "optico": {"cor_hsv": {"h": [30, 80], "s": [0, 1], "v": [0, 1]}}},
                {"id": "au", "nome": "Other"},
            ]
        }
        materials = parse_materials(doc)
        assert len(materials) == 1
        assert materials.get("AU").name == "Ouro"

    def test_calibration(self):
        doc = {"materials": {"metais": []}, "calibration": {"scale": {"micrometer_slide_um_per_px": 0.8}}}
        assert parse_materials(doc).um_per_px == 0.8
        assert parse_materials({"materials": {}}).um_per_px is None

    def test_hsv_range_parsing(self):
        rng = parse_hsv_range({"cor_hsv": {"h": [200, 280], "s": [2, 18], "v": [45, 90]}})
        assert rng.as_row() == (200.0, 280.0, 0.02, 0.18, 0.45, 0.9)
        assert parse_hsv_range(None) is None
        assert parse_hsv_range({"cor_hsv": {"h": ["a", "b"], "s": [0, 1], "v": [0, 1]}}) is None

    def test_unknown_material(self):
        assert load_materials().get("Unobtainium") is None
        assert load_materials().get(None) is None

    @pytest.mark.parametrize("doc", [[], {"materials": []}])
    def test_malformed_document(self, doc):
        with pytest.raises(MaterialsConfigError):
            parse_materials(doc)


class TestLoading:
    def test_missing_file(self, tmp_path):
        with pytest.raises(MaterialsConfigError, match="Cannot read"):
            load_materials(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "materials.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MaterialsConfigError, match="Invalid JSON"):
            load_materials(path)

    def test_from_file(self, tmp_path):
        path = tmp_path / "materials.json"
        path.write_text('{"materials": {"gemas": [{"id": "Rubi"}]}}', encoding="utf-8")
        materials = load_materials(str(path))
        assert materials.get("rubi").material_type == MaterialType.GEM

    def test_from_dict(self):
        assert load_materials({"metais": [{"id": "Fe"}]}).ids == ["Fe"]


class TestPipelineOptions:
    def test_routes_flat_options(self):
        config = PipelineConfig().with_overrides(
            min_region_size=50, use_metal_heuristics=False, min_particle_pixels=5, confidence_threshold=0.8
        )
        assert config.segmentation.min_region_size == 50
        assert config.classifier.use_metal_heuristics is False
        assert config.particles.min_particle_pixels == 5
        assert config.render.confidence_threshold == 0.8

    def test_mask_sensitivity(self):
        config = PipelineConfig().with_overrides(mask_sensitivity=0.8)
        assert config.segmentation.std_multiplier == pytest.approx(0.2)

    def test_top_level_option(self):
        assert PipelineConfig().with_overrides(build_preview=False).build_preview is False

    def test_original_untouched(self):
        base = PipelineConfig()
        base.with_overrides(min_region_size=50)
        assert base.segmentation.min_region_size == 100

    def test_unknown_option(self):
        with pytest.raises(ValueError, match="Unknown option"):
            PipelineConfig().with_overrides(turbo=True)
