"""Evaluation utilities for model assessment."""

from .metrics import (
    EvaluationMetrics,
    binary_auc,
    compute_confusion_stats,
    compute_metrics,
    compute_multiclass_auc,
    compute_ovr_auc,
    roc_curve_ovr,
)
from .importance import compute_permutation_importance, select_top_features
from .visualization import plot_feature_importance, plot_probability_violin, probability_groups

__all__ = [
    'EvaluationMetrics',
    'binary_auc',
    'compute_confusion_stats',
    'compute_metrics',
    'compute_multiclass_auc',
    'compute_ovr_auc',
    'roc_curve_ovr',
    'compute_permutation_importance',
    'select_top_features',
    'plot_feature_importance',
    'plot_probability_violin',
    'probability_groups',
]
