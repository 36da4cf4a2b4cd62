"""MineralSight image analysis engine."""

from mineralsight.engine.registry import stage, Layer, get_registry
from mineralsight.engine.context import AnalysisContext
from mineralsight.engine.pipeline import Pipeline, analyze_scene, create_pipeline

__all__ = [
    "stage",
    "Layer",
    "get_registry",
    "AnalysisContext",
    "Pipeline",
    "analyze_scene",
    "create_pipeline",
]
