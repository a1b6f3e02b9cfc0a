"""Generate synthetic CD4/CD8/DP expression data for testing."""

import logging
from typing import Sequence
import numpy as np
import pandas as pd
from anndata import AnnData

from ..config import DEFAULT_CLASSES

logger = logging.getLogger(__name__)


def generate_synthetic_data(
    n_per_class: int = 100,
    n_genes: int = 50,
    n_markers: int = 5,
    separable: bool = True,
    classes: Sequence[str] = DEFAULT_CLASSES,
    label_column: str = 'cluster',
    seed: int = 42,
) -> AnnData:
    """Generate a labelled test matrix with class-specific marker genes.

    Each class gets ``n_markers`` marker genes. With ``separable=True`` the
    marker genes of a class are drawn from [5, 10] in its own cells and from
    [0, 1] everywhere else, so any reasonable forest separates the classes
    perfectly. Otherwise markers are shifted Gaussians that overlap.

    Parameters
    ----------
    n_per_class : int, default=100
        Number of cells per class
    n_genes : int, default=50
        Total number of genes; must be at least ``n_markers * len(classes)``
    n_markers : int, default=5
        Marker genes per class
    separable : bool, default=True
        Whether class markers have non-overlapping ranges
    classes : sequence of str
        Class labels
    label_column : str, default='cluster'
        Name of the label column in ``.obs``
    seed : int, default=42
        Random seed for reproducibility

    Returns
    -------
    adata : AnnData
        Synthetic matrix with:
        - .obs[label_column]: true class
        - .var['marker_for']: class this gene marks ('' for background genes)

    Examples
    --------
    >>> adata = generate_synthetic_data(n_per_class=100)
    >>> adata.obs['cluster'].value_counts()
    """
    n_classes = len(classes)
    if n_genes < n_markers * n_classes:
        raise ValueError(
            f"n_genes ({n_genes}) must be at least n_markers * n_classes "
            f"({n_markers * n_classes})"
        )

    rng = np.random.default_rng(seed)
    n_cells = n_per_class * n_classes

    logger.info(f"Generating synthetic data: {n_cells} cells x {n_genes} genes")

    labels = np.repeat(list(classes), n_per_class)

    # Background genes carry no class information
    X = rng.uniform(0.0, 3.0, size=(n_cells, n_genes))

    marker_for = [''] * n_genes
    for i, cls in enumerate(classes):
        start, end = i * n_markers, (i + 1) * n_markers
        in_class = labels == cls
        for j in range(start, end):
            marker_for[j] = cls
        if separable:
            X[:, start:end] = rng.uniform(0.0, 1.0, size=(n_cells, n_markers))
            X[in_class, start:end] = rng.uniform(5.0, 10.0, size=(in_class.sum(), n_markers))
        else:
            X[:, start:end] = rng.normal(1.0, 1.0, size=(n_cells, n_markers))
            X[in_class, start:end] += 1.0

    gene_names = [f"Gene_{i+1}" for i in range(n_genes)]
    var_df = pd.DataFrame({'marker_for': marker_for}, index=gene_names)

    obs_df = pd.DataFrame(
        {label_column: pd.Categorical(labels, categories=list(classes), ordered=True)},
        index=[f"Cell_{i+1}" for i in range(n_cells)],
    )

    adata = AnnData(X=X, obs=obs_df, var=var_df)
    adata.uns['synthetic'] = True
    adata.uns['separable'] = separable

    logger.info(f"Generated {n_per_class} cells for each of {list(classes)}")

    return adata
