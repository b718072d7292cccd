from .analyzer import DiagramFrame, analyze
from .report import generate_quality_report
from .scoring import apply_critical_caps, calculate_node_badness, composite_objective, grade_for, score_criteria
from .weights import (
    DEFAULT_QUALITY_WEIGHTS,
    DEFAULT_THRESHOLDS,
    LEVEL_WEIGHT_OVERRIDES,
    QualityThresholds,
    QualityWeights,
    get_quality_weights_for_level,
)

__all__ = [
    "analyze",
    "DiagramFrame",
    "generate_quality_report",
    "apply_critical_caps",
    "calculate_node_badness",
    "composite_objective",
    "grade_for",
    "score_criteria",
    "DEFAULT_QUALITY_WEIGHTS",
    "DEFAULT_THRESHOLDS",
    "LEVEL_WEIGHT_OVERRIDES",
    "QualityThresholds",
    "QualityWeights",
    "get_quality_weights_for_level",
]
