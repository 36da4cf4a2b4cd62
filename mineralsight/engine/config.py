"""Pipeline configuration: segmentation, classification, particle and render knobs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass
class SegmentationConfig:
    """Adaptive foreground/background segmentation."""

    # Background estimate from the outer frame
    border_band: int = 12

    # Composite index = inverted brightness * w1 + gradient * w2
    texture_weight: float = 0.5
    gradient_weight: float = 0.5
    min_saturation: float = 0.06
    saturation_boost: float = 30.0

    # Color distance to background (RGB euclidean)
    near_background_distance: float = 20.0
    near_background_factor: float = 0.3
    far_background_distance: float = 60.0
    far_background_factor: float = 1.2

    # Blown-out / black pixels are forced to index 0 and left out of the statistics
    max_value_clip: float = 0.98
    min_value_clip: float = 0.02

    # threshold = clamp(mean + k * std, min, max)
    std_multiplier: float = 0.5
    min_threshold: float = 30.0
    max_threshold: float = 180.0

    # Cleanup
    min_region_size: int = 100
    keep_only_largest: bool = False
    max_hole_size: int = 50

    # Mask preview
    preview_color: tuple[int, int, int] = (0, 100, 200)
    preview_alpha: float = 0.5

    @classmethod
    def from_sensitivity(cls, sensitivity: float, **overrides) -> SegmentationConfig:
        """Map a 0..1 sensitivity knob onto the std multiplier (k = 1 - s)."""
        s = min(1.0, max(0.0, sensitivity))
        return cls(std_multiplier=1.0 - s, **overrides)


@dataclass
class ClassifierConfig:
    """Heuristic scoring and heuristic/secondary fusion."""

    # HSV range score weights and out-of-range falloff distances
    hue_weight: float = 0.4
    saturation_weight: float = 0.3
    value_weight: float = 0.3
    hue_falloff: float = 60.0  # degrees
    sv_falloff: float = 0.3

    # Constant score of the catch-all "MetalOther" candidate
    fallback_score: float = 0.3

    # Warm-gold / neutral-gray shortcuts for Au and Pt
    use_metal_heuristics: bool = True
    gold_boost_score: float = 0.85
    pgm_boost_score: float = 0.70

    # Fusion
    heuristic_weight: float = 0.7
    secondary_weight: float = 0.3
    agreement_bonus: float = 1.1
    loser_share: float = 0.5

    # Sample pixels below this fused confidence stay unassigned
    min_pixel_confidence: float = 0.0


@dataclass
class ParticleConfig:
    min_particle_pixels: int = 2
    group_by_material: bool = True
    um_per_px: float | None = None


@dataclass
class RenderConfig:
    """Overlay colors and the selective-view noise filter."""

    confidence_threshold: float = 0.5
    min_cluster_pixels: int = 2
    overlay_alpha: float = 0.6
    background_color: tuple[int, int, int] = (0, 80, 200)
    background_alpha: float = 0.6

    # X-ray variant
    high_confidence: float = 0.7
    top2_margin: float = 0.05
    xray_strong_alpha: float = 0.7
    xray_weak_alpha: float = 0.35
    uncertain_color: tuple[int, int, int] | None = (255, 140, 0)


@dataclass
class PipelineConfig:
    """Everything one frame analysis needs besides the image and materials."""

    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    particles: ParticleConfig = field(default_factory=ParticleConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    # Auxiliary stages (mask preview) can be skipped for continuous mode
    build_preview: bool = True

    def with_overrides(self, **options) -> PipelineConfig:
        """Copy with flat option names routed to the owning section."""
        sections = {
            name: getattr(self, name) for name in ("segmentation", "classifier", "particles", "render")
        }
        updated = dict(sections)
        top_level = {}
        for key, value in options.items():
            if key == "mask_sensitivity":
                updated["segmentation"] = replace(
                    updated["segmentation"], std_multiplier=1.0 - min(1.0, max(0.0, value))
                )
                continue
            for name, section in sections.items():
                if hasattr(section, key):
                    updated[name] = replace(updated[name], **{key: value})
                    break
            else:
                if not hasattr(self, key):
                    raise ValueError(f"Unknown option: {key}")
                top_level[key] = value
        return replace(self, **updated, **top_level)
