"""End-to-end evaluation of the pre-trained DP classifier."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import pandas as pd

from .config import EvaluationConfig
from .data.loader import load_test_matrix
from .evaluation.importance import compute_permutation_importance, select_top_features
from .evaluation.metrics import EvaluationMetrics, compute_metrics
from .evaluation.visualization import plot_feature_importance, plot_probability_violin
from .exceptions import is_undefined
from .inference import predict
from .models import ForestModel, load_model

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    """Everything one run produces."""

    predictions: pd.DataFrame
    metrics: EvaluationMetrics
    importance: pd.DataFrame
    prob_plot: Path
    features_plot: Path


class EvaluationPipeline:
    """Score a pre-trained random forest on a held-out test matrix.

    Stages run strictly in order: load model and matrix, predict, compute
    metrics, compute feature importance, write the two charts.

    Parameters
    ----------
    config : EvaluationConfig, optional
        Run settings. Defaults reproduce the original analysis paths.

    Examples
    --------
    >>> from dptclf import EvaluationPipeline, load_config
    >>> report = EvaluationPipeline(load_config('dptclf.yaml')).run()
    >>> print(format_report(report))
    """

    def __init__(self, config: Optional[EvaluationConfig] = None):
        self.config = config or EvaluationConfig()
        logger.info(f"Initialized pipeline: {self.config}")

    def run(self) -> EvaluationReport:
        """Run every stage and return the collected results."""
        cfg = self.config

        # Load
        model = load_model(cfg.model_path)
        adata = load_test_matrix(cfg.matrix_path, cfg.label_column, cfg.classes)

        # Predict
        predictions = predict(
            model,
            adata,
            label_column=cfg.label_column,
            classes=cfg.classes,
            decision_rule=cfg.decision_rule,
            positive_class=cfg.positive_class,
            threshold=cfg.threshold,
        )

        # Metrics
        metrics = compute_metrics(predictions, cfg.classes)
        for cls in metrics.undefined_classes:
            logger.warning(f"Continuing with undefined AUC for class '{cls}'")

        # Importance
        importance = self._importance(model, adata)

        # Charts
        prob_plot = plot_probability_violin(
            predictions,
            save=cfg.prob_plot_path,
            positive_class=cfg.positive_class,
            size_px=cfg.prob_plot_size,
        )
        features_plot = plot_feature_importance(
            importance,
            save=cfg.features_plot_path,
            size_px=cfg.features_plot_size,
        )

        logger.info("Evaluation completed")
        return EvaluationReport(
            predictions=predictions,
            metrics=metrics,
            importance=importance,
            prob_plot=prob_plot,
            features_plot=features_plot,
        )

    def _importance(self, model: ForestModel, adata) -> pd.DataFrame:
        cfg = self.config
        table = compute_permutation_importance(
            model,
            adata,
            label_column=cfg.label_column,
            target_class=cfg.positive_class,
            n_repeats=cfg.n_repeats,
            random_state=cfg.random_state,
        )
        return select_top_features(table, cfg.top_n_features)


def _fmt(value) -> str:
    if is_undefined(value):
        return str(value)
    return f"{value:.4f}"


def format_report(report: EvaluationReport) -> str:
    """Render the metrics of a run as console text."""
    metrics = report.metrics
    lines = []

    lines.append("=" * 60)
    lines.append("AUC (one-vs-rest)")
    lines.append("=" * 60)
    for cls, value in metrics.auc.items():
        lines.append(f"  {cls:20s}  {_fmt(value)}")
    lines.append(f"  {'multi-class':20s}  {_fmt(metrics.multiclass_auc)}  (advisory)")

    with pd.option_context('display.width', 120, 'display.max_columns', None,
                           'display.float_format', '{:.4f}'.format):
        lines.append("")
        lines.append("=" * 60)
        lines.append("CONFUSION MATRIX (rows: truth, columns: prediction)")
        lines.append("=" * 60)
        lines.append(metrics.confusion.to_string())
        lines.append("")
        lines.append("=" * 60)
        lines.append("BY CLASS")
        lines.append("=" * 60)
        lines.append(metrics.by_class.to_string())
        lines.append("")
        lines.append("=" * 60)
        lines.append("OVERALL")
        lines.append("=" * 60)
        lines.append(metrics.overall.to_string())

    lines.append("")
    lines.append(f"Charts: {report.prob_plot}, {report.features_plot}")
    return "\n".join(lines)
