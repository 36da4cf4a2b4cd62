"""Consistency/quality assessment. Turns diagnostics and results into severity-ranked alerts."""

from __future__ import annotations

import logging

from mineralsight.engine.results import (
    AlertSeverity,
    ConsistencyAlert,
    ConsistencyCheckResult,
    ImageDiagnostics,
    MaskValidation,
    SampleFullAnalysisResult,
)

logger = logging.getLogger(__name__)

FOCUS_ERROR = 0.3
FOCUS_WARNING = 0.5
CLIPPING_ERROR = 0.15
CLIPPING_WARNING = 0.05
FOREGROUND_CRITICAL = 0.03
FOREGROUND_LOW = 0.10
FOREGROUND_HIGH = 0.90
FOREGROUND_ERROR = 0.97
AU_PLAUSIBLE_MAX = 0.10
PT_PLAUSIBLE_MAX = 0.05
PARTICLE_LOW_CONFIDENCE = 0.5


class ConsistencyAssessor:
    def check(
        self,
        diagnostics: ImageDiagnostics | None,
        mask_validation: MaskValidation | None,
        analysis: SampleFullAnalysisResult | None,
    ) -> ConsistencyCheckResult:
        alerts: list[ConsistencyAlert] = []
        if diagnostics is not None:
            alerts.extend(self._focus(diagnostics.focus_score))
            alerts.extend(self._clipping(diagnostics.clipping_fraction))
            alerts.extend(self._foreground(diagnostics.foreground_fraction))
        if mask_validation is not None and mask_validation.has_anomalies:
            alerts.extend(
                ConsistencyAlert(AlertSeverity.WARNING, "MASK_ANOMALY", warning)
                for warning in mask_validation.warnings
            )
        if analysis is not None:
            alerts.extend(self._plausibility(analysis))
            alerts.extend(self._particles(analysis))

        alerts.sort(key=lambda a: a.severity, reverse=True)
        result = ConsistencyCheckResult(alerts=tuple(alerts), summary=self._summary(alerts))
        logger.info(
            "Consistency: %d alerts, status=%s",
            len(alerts),
            result.suggested_quality_status.value,
        )
        return result

    def _focus(self, focus: float) -> list[ConsistencyAlert]:
        if focus < FOCUS_ERROR:
            return [
                ConsistencyAlert(
                    AlertSeverity.ERROR,
                    "FOCUS_CRITICAL",
                    f"Focus score {focus:.2f} is below {FOCUS_ERROR:.2f}",
                    "Refocus the microscope before capturing",
                )
            ]
        if focus < FOCUS_WARNING:
            return [
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "FOCUS_LOW",
                    f"Focus score {focus:.2f} is below {FOCUS_WARNING:.2f}",
                    "Fine-tune focus for sharper particle edges",
                )
            ]
        return []

    def _clipping(self, clipping: float) -> list[ConsistencyAlert]:
        if clipping > CLIPPING_ERROR:
            return [
                ConsistencyAlert(
                    AlertSeverity.ERROR,
                    "CLIPPING_HIGH",
                    f"{clipping:.1%} of pixels are clipped",
                    "Reduce exposure or illumination",
                )
            ]
        if clipping > CLIPPING_WARNING:
            return [
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "CLIPPING_MODERATE",
                    f"{clipping:.1%} of pixels are clipped",
                    "Check exposure settings",
                )
            ]
        return []

    def _foreground(self, fraction: float) -> list[ConsistencyAlert]:
        if fraction < FOREGROUND_CRITICAL:
            return [
                ConsistencyAlert(
                    AlertSeverity.CRITICAL,
                    "MASK_NO_SAMPLE",
                    f"Sample covers only {fraction:.1%} of the image",
                    "Check that a sample is in the field of view",
                )
            ]
        if fraction > FOREGROUND_ERROR:
            return [
                ConsistencyAlert(
                    AlertSeverity.ERROR,
                    "MASK_TOO_MUCH",
                    f"Sample covers {fraction:.1%} of the image; background could not be separated",
                    "Leave some background visible around the sample",
                )
            ]
        if fraction < FOREGROUND_LOW:
            return [
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "MASK_LOW_SAMPLE",
                    f"Sample covers only {fraction:.1%} of the image",
                )
            ]
        if fraction > FOREGROUND_HIGH:
            return [
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "MASK_HIGH_SAMPLE",
                    f"Sample covers {fraction:.1%} of the image",
                )
            ]
        return []

    def _plausibility(self, analysis: SampleFullAnalysisResult) -> list[ConsistencyAlert]:
        alerts = []
        au = analysis.metal("Au")
        if au is not None and au.fraction > AU_PLAUSIBLE_MAX:
            alerts.append(
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "AU_HIGH",
                    f"Au fraction {au.fraction:.1%} is unusually high",
                    "Verify for yellow sulfides or illumination tint",
                )
            )
        pt = analysis.metal("Pt")
        if pt is not None and pt.fraction > PT_PLAUSIBLE_MAX:
            alerts.append(
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "PT_HIGH",
                    f"Pt fraction {pt.fraction:.1%} is unusually high",
                    "Verify for gray gangue misread as PGM",
                )
            )
        return alerts

    def _particles(self, analysis: SampleFullAnalysisResult) -> list[ConsistencyAlert]:
        particles = analysis.particles
        if not particles:
            return [ConsistencyAlert(AlertSeverity.INFO, "NO_PARTICLES", "No particles were detected")]
        low = sum(1 for p in particles if p.confidence < PARTICLE_LOW_CONFIDENCE)
        if low > len(particles) // 2:
            return [
                ConsistencyAlert(
                    AlertSeverity.WARNING,
                    "LOW_CONFIDENCE_PARTICLES",
                    f"{low} of {len(particles)} particles have confidence below {PARTICLE_LOW_CONFIDENCE}",
                    "Review material ranges or image quality",
                )
            ]
        return []

    def _summary(self, alerts: list[ConsistencyAlert]) -> str:
        if not alerts:
            return "All consistency checks passed"
        counts = {s: sum(1 for a in alerts if a.severity == s) for s in AlertSeverity}
        parts = [f"{n} {s.name.lower()}" for s, n in sorted(counts.items(), reverse=True) if n]
        return "Consistency alerts: " + ", ".join(parts)
