"""Metrics for evaluating CD4/CD8/DP classification."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence, Union
import numpy as np
import pandas as pd
from scipy.stats import binomtest
from sklearn.metrics import (
    cohen_kappa_score,
    confusion_matrix,
    roc_auc_score,
    roc_curve,
)

from ..config import DEFAULT_CLASSES
from ..exceptions import UNDEFINED, SchemaMismatch, is_undefined
from ..inference import prob_column

logger = logging.getLogger(__name__)

AucValue = Union[float, type(UNDEFINED)]

BY_CLASS_COLUMNS = [
    'Sensitivity',
    'Specificity',
    'Pos Pred Value',
    'Neg Pred Value',
    'Precision',
    'Recall',
    'F1',
    'Prevalence',
    'Detection Rate',
    'Detection Prevalence',
    'Balanced Accuracy',
]


@dataclass
class EvaluationMetrics:
    """All discrimination metrics of one run."""

    auc: Dict[str, AucValue]
    multiclass_auc: AucValue
    confusion: pd.DataFrame
    by_class: pd.DataFrame
    overall: pd.Series
    roc_curves: Dict[str, object] = field(default_factory=dict, repr=False)

    @property
    def accuracy(self) -> float:
        return float(self.overall['Accuracy'])

    @property
    def undefined_classes(self):
        return [c for c, v in self.auc.items() if is_undefined(v)]


def _binary_split(truth: np.ndarray, positive: str):
    is_pos = np.asarray(truth, dtype=str) == str(positive)
    return is_pos, int(is_pos.sum()), int((~is_pos).sum())


def roc_curve_ovr(
    truth: Sequence,
    scores: Sequence[float],
    positive: str,
):
    """One-vs-rest ROC curve for a single class.

    Parameters
    ----------
    truth : array-like
        True labels
    scores : array-like
        Predicted probability of ``positive`` for each row
    positive : str
        Class treated as positive; every other class is negative

    Returns
    -------
    curve : pd.DataFrame or UNDEFINED
        Columns ``fpr``, ``tpr``, ``threshold``, sorted by decreasing
        threshold. UNDEFINED when either side of the split is empty.
    """
    is_pos, n_pos, n_neg = _binary_split(truth, positive)
    if n_pos == 0 or n_neg == 0:
        return UNDEFINED

    fpr, tpr, thresholds = roc_curve(is_pos, np.asarray(scores, dtype=float),
                                     drop_intermediate=False)
    return pd.DataFrame({'fpr': fpr, 'tpr': tpr, 'threshold': thresholds})


def binary_auc(truth: Sequence, scores: Sequence[float], positive: str) -> AucValue:
    """Area under the one-vs-rest ROC curve (trapezoidal).

    Equals the Mann-Whitney U statistic divided by ``n_pos * n_neg``.
    Returns UNDEFINED when the positive class has no support, or when it is
    the only class present.
    """
    is_pos, n_pos, n_neg = _binary_split(truth, positive)
    if n_pos == 0 or n_neg == 0:
        return UNDEFINED
    return float(roc_auc_score(is_pos, np.asarray(scores, dtype=float)))


def compute_ovr_auc(
    predictions: pd.DataFrame,
    classes: Sequence[str] = DEFAULT_CLASSES,
) -> Dict[str, AucValue]:
    """Compute one-vs-rest AUC for every class.

    Examples
    --------
    >>> auc = compute_ovr_auc(predictions)
    >>> print(f"DP AUC: {auc['DP']:.3f}")
    """
    truth = predictions['truth'].astype(str).values
    results = {}
    for cls in classes:
        value = binary_auc(truth, predictions[prob_column(cls)].values, cls)
        if is_undefined(value):
            logger.warning(f"AUC for class '{cls}' is undefined (no support on one side)")
        results[cls] = value
    return results


def compute_multiclass_auc(
    predictions: pd.DataFrame,
    classes: Sequence[str] = DEFAULT_CLASSES,
) -> AucValue:
    """Hand & Till multi-class AUC (mean over all class pairs).

    Advisory summary only. UNDEFINED unless every class has support.
    """
    classes = list(classes)
    truth = predictions['truth'].astype(str).values
    present = set(truth)
    if any(c not in present for c in classes):
        logger.warning("Multi-class AUC is undefined: not every class has support")
        return UNDEFINED

    proba = predictions[[prob_column(c) for c in classes]].values
    return float(roc_auc_score(truth, proba, multi_class='ovo', labels=classes))


def _ratio(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    num = np.asarray(num, dtype=float)
    den = np.asarray(den, dtype=float)
    out = np.full(num.shape, np.nan)
    np.divide(num, den, out=out, where=den > 0)
    return out


def compute_confusion_stats(
    y_true: Sequence,
    y_pred: Sequence,
    classes: Sequence[str] = DEFAULT_CLASSES,
) -> Dict[str, object]:
    """Compute confusion matrix and related statistics.

    Parameters
    ----------
    y_true : array-like
        Ground truth labels
    y_pred : array-like
        Hard predicted labels
    classes : sequence of str
        Fixed class order for rows and columns

    Returns
    -------
    stats : dict
        Dictionary with:
        - 'table': counts, true class rows x predicted class columns
        - 'by_class': one-vs-rest statistics per class (NaN where a ratio
          has a zero denominator)
        - 'overall': Accuracy, Kappa, exact 95% CI of accuracy, the
          no-information rate and the p-value of accuracy > NIR

    Examples
    --------
    >>> stats = compute_confusion_stats(preds['truth'], preds['response'])
    >>> print(stats['by_class'].loc['DP', 'Sensitivity'])
    """
    classes = [str(c) for c in classes]
    y_true_str = np.asarray(y_true, dtype=str)
    y_pred_str = np.asarray(y_pred, dtype=str)

    if len(y_true_str) == 0:
        raise SchemaMismatch("Cannot compute a confusion matrix for zero cells")

    cm = confusion_matrix(y_true_str, y_pred_str, labels=classes)
    table = pd.DataFrame(
        cm,
        index=pd.Index(classes, name='truth'),
        columns=pd.Index(classes, name='response'),
    )

    n = cm.sum()
    tp = np.diag(cm)
    fn = cm.sum(axis=1) - tp
    fp = cm.sum(axis=0) - tp
    tn = n - tp - fn - fp

    sensitivity = _ratio(tp, tp + fn)
    specificity = _ratio(tn, tn + fp)
    ppv = _ratio(tp, tp + fp)
    npv = _ratio(tn, tn + fn)
    f1 = _ratio(2 * tp, 2 * tp + fp + fn)

    by_class = pd.DataFrame(
        {
            'Sensitivity': sensitivity,
            'Specificity': specificity,
            'Pos Pred Value': ppv,
            'Neg Pred Value': npv,
            'Precision': ppv,
            'Recall': sensitivity,
            'F1': f1,
            'Prevalence': (tp + fn) / n,
            'Detection Rate': tp / n,
            'Detection Prevalence': (tp + fp) / n,
            'Balanced Accuracy': (sensitivity + specificity) / 2,
        },
        index=pd.Index(classes, name='class'),
    )[BY_CLASS_COLUMNS]

    correct = int(tp.sum())
    accuracy = correct / n
    nir = cm.sum(axis=1).max() / n

    with np.errstate(divide='ignore', invalid='ignore'):
        kappa = cohen_kappa_score(y_true_str, y_pred_str, labels=classes)

    ci = binomtest(correct, int(n)).proportion_ci(confidence_level=0.95, method='exact')
    p_value = binomtest(correct, int(n), p=nir, alternative='greater').pvalue

    overall = pd.Series(
        {
            'Accuracy': accuracy,
            'Kappa': float(kappa),
            'AccuracyLower': ci.low,
            'AccuracyUpper': ci.high,
            'AccuracyNull': nir,
            'AccuracyPValue': p_value,
        },
        name='overall',
    )

    return {
        'table': table,
        'by_class': by_class,
        'overall': overall,
    }


def compute_metrics(
    predictions: pd.DataFrame,
    classes: Sequence[str] = DEFAULT_CLASSES,
) -> EvaluationMetrics:
    """Compute every discrimination metric for a prediction table.

    Parameters
    ----------
    predictions : pd.DataFrame
        Output of ``dptclf.inference.predict``
    classes : sequence of str
        Class order

    Returns
    -------
    metrics : EvaluationMetrics
    """
    classes = [str(c) for c in classes]
    truth = predictions['truth'].astype(str).values

    auc = compute_ovr_auc(predictions, classes)
    multiclass = compute_multiclass_auc(predictions, classes)
    curves = {
        cls: roc_curve_ovr(truth, predictions[prob_column(cls)].values, cls)
        for cls in classes
    }
    stats = compute_confusion_stats(truth, predictions['response'].astype(str).values, classes)

    metrics = EvaluationMetrics(
        auc=auc,
        multiclass_auc=multiclass,
        confusion=stats['table'],
        by_class=stats['by_class'],
        overall=stats['overall'],
        roc_curves=curves,
    )

    logger.info(f"Accuracy: {metrics.accuracy:.4f}, Kappa: {metrics.overall['Kappa']:.4f}")
    for cls, value in auc.items():
        logger.info(f"AUC {cls}: {value:.4f}")

    return metrics
