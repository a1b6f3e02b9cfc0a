"""Diagnostic charts for the DP classifier."""

import logging
from pathlib import Path
from typing import Tuple, Union
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from ..exceptions import OutputWriteError
from ..inference import prob_column

logger = logging.getLogger(__name__)

DPI = 100
# Violin fills, in Outcome order (non-positive group first)
OUTCOME_COLORS = ('#4DA3FF', '#FF6B6B')
# Importance bars by sign
POSITIVE_COLOR = '#4DA3FF'
NEGATIVE_COLOR = '#FF6B6B'


def _group_labels(positive_class: str) -> Tuple[str, str]:
    return f"non-{positive_class}", positive_class


def _new_figure(size_px: Tuple[int, int]):
    width, height = size_px
    return plt.subplots(figsize=(width / DPI, height / DPI), dpi=DPI)


def _save(fig: plt.Figure, save: Union[str, Path]) -> Path:
    """Write a figure at its exact pixel size, always closing it."""
    save = Path(save)
    try:
        save.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save, dpi=DPI)
    except OSError as e:
        raise OutputWriteError(f"Could not write chart to {save}: {e}") from e
    finally:
        plt.close(fig)
    logger.info(f"Saved chart to {save}")
    return save


def probability_groups(predictions: pd.DataFrame, positive_class: str = 'DP') -> pd.DataFrame:
    """Positive-class probability of every cell, split by true membership.

    Returns
    -------
    groups : pd.DataFrame
        Columns ``RF`` (predicted probability of ``positive_class``) and
        ``Outcome`` (ordered categorical: ``non-DP`` then ``DP``)
    """
    negative_label, positive_label = _group_labels(positive_class)
    is_positive = predictions['truth'].astype(str).values == str(positive_class)
    outcome = np.where(is_positive, positive_label, negative_label)
    return pd.DataFrame(
        {
            'RF': predictions[prob_column(positive_class)].values,
            'Outcome': pd.Categorical(
                outcome, categories=[negative_label, positive_label], ordered=True
            ),
        },
        index=predictions.index,
    )


def plot_probability_violin(
    predictions: pd.DataFrame,
    save: Union[str, Path],
    positive_class: str = 'DP',
    size_px: Tuple[int, int] = (850, 1000),
) -> Path:
    """Violin + box plot of the positive-class probability by true group.

    Parameters
    ----------
    predictions : pd.DataFrame
        Output of ``dptclf.inference.predict``
    save : str or Path
        Target PNG path
    positive_class : str, default='DP'
        Class whose probability is plotted
    size_px : tuple, default=(850, 1000)
        Image width and height in pixels

    Returns
    -------
    path : Path
        Written file

    Examples
    --------
    >>> plot_probability_violin(preds, '01.DP_RF_prob.png')
    """
    df = probability_groups(predictions, positive_class)
    order = list(df['Outcome'].cat.categories)
    palette = dict(zip(order, OUTCOME_COLORS))

    fig, ax = _new_figure(size_px)
    try:
        # A KDE needs spread; groups with a single distinct value only get a box
        spread = df.groupby('Outcome', observed=False)['RF'].transform('var').fillna(0) > 0
        if spread.any():
            sns.violinplot(
                data=df[spread], x='Outcome', y='RF', hue='Outcome',
                order=order, hue_order=order, palette=palette,
                inner=None, cut=2, legend=False, ax=ax,
            )
            for collection in ax.collections:
                collection.set_alpha(0.5)

        sns.boxplot(
            data=df, x='Outcome', y='RF', hue='Outcome',
            order=order, hue_order=order, palette=palette,
            width=0.15, legend=False, ax=ax,
            boxprops={'edgecolor': 'black'},
            whiskerprops={'color': 'black'},
            capprops={'color': 'black'},
            medianprops={'color': 'black'},
            flierprops={'markersize': 2},
        )

        ax.set_xlabel('')
        ax.set_ylabel(f'RF predicted probability ({positive_class})', fontsize=18, weight='bold')
        ax.set_title(f'RF predicted probability by {positive_class} group', fontsize=20,
                     weight='bold')
        ax.tick_params(axis='x', labelsize=18)
        ax.tick_params(axis='y', labelsize=14)
        sns.despine(ax=ax)
        fig.tight_layout()
    except Exception:
        plt.close(fig)
        raise

    return _save(fig, save)


def plot_feature_importance(
    table: pd.DataFrame,
    save: Union[str, Path],
    size_px: Tuple[int, int] = (900, 1600),
) -> Path:
    """Horizontal bar chart of signed feature importances.

    Bars are ordered by absolute importance, largest at the top, and colored
    by sign (blue for positive, red for negative direction of effect).

    Parameters
    ----------
    table : pd.DataFrame
        Columns ``variable`` and ``importance``, e.g. from
        ``select_top_features``
    save : str or Path
        Target PNG path
    size_px : tuple, default=(900, 1600)
        Image width and height in pixels

    Returns
    -------
    path : Path
        Written file
    """
    order = table['importance'].abs().sort_values(ascending=False, kind='mergesort').index
    df = table.loc[order]
    n = len(df)

    # Largest magnitude gets the highest y position
    y = np.arange(n)[::-1]
    colors = np.where(df['importance'].values > 0, POSITIVE_COLOR, NEGATIVE_COLOR)
    label_size = max(4.0, min(14.0, 0.6 * size_px[1] * 72 / DPI / max(n, 1)))

    fig, ax = _new_figure(size_px)
    try:
        ax.barh(y, df['importance'].values, height=0.7, color=colors, alpha=0.85)
        ax.axvline(0, linestyle='--', color='grey', linewidth=1)
        ax.set_yticks(y)
        ax.set_yticklabels(df['variable'].astype(str).values, fontsize=label_size,
                           weight='bold')
        ax.set_ylim(-0.5, n - 0.5)
        ax.set_xlabel('Feature importance score', fontsize=14, weight='bold')
        ax.set_title('Feature Contribution to RF Model', fontsize=16, weight='bold')
        ax.grid(axis='x', alpha=0.3)
        sns.despine(ax=ax, left=True)
        fig.tight_layout()
    except Exception:
        plt.close(fig)
        raise

    return _save(fig, save)
