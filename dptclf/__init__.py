"""dptclf: evaluation of a pre-trained CD4/CD8/DP T cell classifier

Scores a random forest on held-out single-cell profiles, reports ROC/AUC and
confusion-matrix statistics, and draws probability and feature charts.
"""

from .config import EvaluationConfig, load_config
from .exceptions import (
    UNDEFINED,
    ConfigError,
    DptError,
    InputNotFound,
    OutputWriteError,
    SchemaMismatch,
)
from .pipeline import EvaluationPipeline, EvaluationReport, format_report

__version__ = "0.1.0"
__all__ = [
    "EvaluationConfig",
    "EvaluationPipeline",
    "EvaluationReport",
    "format_report",
    "load_config",
    "UNDEFINED",
    "ConfigError",
    "DptError",
    "InputNotFound",
    "OutputWriteError",
    "SchemaMismatch",
]
