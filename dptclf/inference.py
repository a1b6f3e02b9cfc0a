"""Apply a pre-trained classifier to the test matrix."""

import logging
from typing import Sequence
import numpy as np
import pandas as pd
from anndata import AnnData

from .config import DEFAULT_CLASSES, DECISION_RULES
from .exceptions import ConfigError, SchemaMismatch
from .models import BaseModel

logger = logging.getLogger(__name__)

PROB_PREFIX = 'prob.'
PROB_TOLERANCE = 1e-6


def prob_column(cls: str) -> str:
    """Name of the probability column for a class (e.g. ``prob.DP``)."""
    return f"{PROB_PREFIX}{cls}"


def apply_decision_rule(
    proba: pd.DataFrame,
    decision_rule: str = 'argmax',
    positive_class: str = 'DP',
    threshold: float = 0.5,
) -> np.ndarray:
    """Turn class probabilities into one hard label per row.

    Parameters
    ----------
    proba : pd.DataFrame
        One column per class, in class order
    decision_rule : {'argmax', 'threshold'}
        'argmax' picks the most probable class; ties go to the earliest
        column. 'threshold' picks ``positive_class`` whenever its probability
        reaches ``threshold`` and the most probable remaining class otherwise.
    positive_class : str, default='DP'
        Class tested against ``threshold``
    threshold : float, default=0.5
        Cut-off for the 'threshold' rule

    Returns
    -------
    labels : np.ndarray
        Hard labels
    """
    classes = proba.columns.values

    if decision_rule == 'argmax':
        return classes[np.argmax(proba.values, axis=1)]

    if decision_rule == 'threshold':
        if positive_class not in proba.columns:
            raise ConfigError(f"positive_class '{positive_class}' has no probability column")
        rest = proba.drop(columns=[positive_class])
        labels = rest.columns.values[np.argmax(rest.values, axis=1)].astype(object)
        labels[proba[positive_class].values >= threshold] = positive_class
        return labels

    raise ConfigError(
        f"Unknown decision_rule '{decision_rule}'. Options: {list(DECISION_RULES)}"
    )


def check_probabilities(proba: pd.DataFrame, tol: float = PROB_TOLERANCE) -> None:
    """Raise SchemaMismatch unless every row is a probability distribution."""
    values = proba.values
    if np.isnan(values).any():
        raise SchemaMismatch("Predicted probabilities contain NaN")
    if (values < -tol).any() or (values > 1 + tol).any():
        raise SchemaMismatch("Predicted probabilities fall outside [0, 1]")
    sums = values.sum(axis=1)
    bad = np.abs(sums - 1.0) > tol
    if bad.any():
        raise SchemaMismatch(
            f"{int(bad.sum())} rows have probabilities that do not sum to 1 "
            f"(worst: {sums[bad][np.argmax(np.abs(sums[bad] - 1.0))]:.6f})"
        )


def predict(
    model: BaseModel,
    adata: AnnData,
    label_column: str = 'cluster',
    classes: Sequence[str] = DEFAULT_CLASSES,
    decision_rule: str = 'argmax',
    positive_class: str = 'DP',
    threshold: float = 0.5,
) -> pd.DataFrame:
    """Predict class probabilities and hard labels for every cell.

    Parameters
    ----------
    model : BaseModel
        Pre-trained classifier artifact
    adata : AnnData
        Test matrix with true labels in ``.obs[label_column]``
    label_column : str, default='cluster'
        Column with ground truth labels
    classes : sequence of str
        Class order used for the probability columns
    decision_rule, positive_class, threshold
        See ``apply_decision_rule``

    Returns
    -------
    predictions : pd.DataFrame
        Indexed by cell, with columns ``truth``, ``prob.<class>`` for each
        class, and ``response`` (the hard label)

    Examples
    --------
    >>> preds = predict(model, adata)
    >>> preds[['prob.CD4', 'prob.CD8', 'prob.DP']].sum(axis=1)
    """
    classes = [str(c) for c in classes]

    if set(model.classes) != set(classes):
        raise SchemaMismatch(
            f"Model predicts classes {model.classes}, expected {classes}"
        )
    if label_column not in adata.obs.columns:
        raise SchemaMismatch(f"Label column '{label_column}' not found in test matrix")

    logger.info(f"Predicting {adata.n_obs} cells with {model!r}")

    proba = model.predict_proba(adata)[classes]
    check_probabilities(proba)

    response = apply_decision_rule(
        proba,
        decision_rule=decision_rule,
        positive_class=positive_class,
        threshold=threshold,
    )

    predictions = pd.DataFrame(index=proba.index)
    predictions['truth'] = pd.Categorical(
        adata.obs[label_column].astype(str).values, categories=classes, ordered=True
    )
    for cls in classes:
        predictions[prob_column(cls)] = proba[cls].values
    predictions['response'] = pd.Categorical(response, categories=classes, ordered=True)

    counts = predictions['response'].value_counts().reindex(classes)
    logger.info(f"Predicted labels ({decision_rule}): {counts.to_dict()}")

    return predictions
