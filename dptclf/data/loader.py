"""Data loading utilities."""

import logging
import pickle
from pathlib import Path
from typing import Sequence, Union
import numpy as np
import pandas as pd
from anndata import AnnData
import scanpy as sc

from ..config import DEFAULT_CLASSES
from ..exceptions import InputNotFound, SchemaMismatch

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = ('.h5ad', '.csv', '.pkl')


def load_test_matrix(
    path: Union[str, Path],
    label_column: str = 'cluster',
    classes: Sequence[str] = DEFAULT_CLASSES,
) -> AnnData:
    """Load the held-out test matrix and validate its label column.

    Supports .h5ad (label in ``.obs``), .csv and .pkl (a pandas table holding
    numeric feature columns plus the label column). A CSV may start with a
    cell-id column; it is used as the index when its header is empty (as
    written by ``DataFrame.to_csv()``) or when it is not numeric. Otherwise
    every column except the label is read as a gene.

    Parameters
    ----------
    path : str or Path
        Path to data file
    label_column : str, default='cluster'
        Column holding the true class of each cell
    classes : sequence of str
        Admissible label values

    Returns
    -------
    adata : AnnData
        Cells x genes matrix, with ``.obs[label_column]`` as an ordered
        categorical over ``classes``

    Examples
    --------
    >>> adata = load_test_matrix("/DPT_model/test_matrix.h5ad")
    >>> adata.obs['cluster'].value_counts()
    """
    path = Path(path)

    if not path.exists():
        raise InputNotFound(f"Test matrix not found: {path}")

    logger.info(f"Loading test matrix from {path}")

    suffix = path.suffix.lower()

    if suffix == '.h5ad':
        try:
            adata = sc.read_h5ad(path)
        except OSError as e:
            raise InputNotFound(f"Could not read test matrix {path}: {e}") from e
    elif suffix in ('.csv', '.pkl'):
        try:
            df = _read_csv(path, label_column) if suffix == '.csv' else pd.read_pickle(path)
        except (OSError, ValueError, EOFError, pickle.UnpicklingError,
                ImportError, AttributeError) as e:
            raise InputNotFound(f"Could not read test matrix {path}: {e}") from e
        if not isinstance(df, pd.DataFrame):
            raise SchemaMismatch(
                f"Expected a pandas DataFrame in {path}, got {type(df).__name__}"
            )
        adata = frame_to_adata(df, label_column)
    else:
        raise SchemaMismatch(
            f"Unsupported file format: {suffix}. "
            f"Supported: {', '.join(SUPPORTED_SUFFIXES)}"
        )

    adata = validate_labels(adata, label_column, classes)

    logger.info(f"Loaded {adata.n_obs} cells x {adata.n_vars} genes")
    logger.info(f"Class distribution:\n{adata.obs[label_column].value_counts()}")

    return adata


def _read_csv(path: Path, label_column: str) -> pd.DataFrame:
    df = pd.read_csv(path)
    first = df.columns[0]
    if first != label_column and (
        str(first).startswith('Unnamed:') or not pd.api.types.is_numeric_dtype(df[first])
    ):
        df = df.set_index(first)
        df.index.name = None
    return df


def frame_to_adata(df: pd.DataFrame, label_column: str) -> AnnData:
    """Split a table into a numeric feature matrix and a label column."""
    if label_column not in df.columns:
        raise SchemaMismatch(
            f"Label column '{label_column}' not found in test matrix. "
            f"Available columns: {list(df.columns[:20])}"
        )

    features = df.drop(columns=[label_column])
    non_numeric = [
        c for c in features.columns if not pd.api.types.is_numeric_dtype(features[c])
    ]
    if non_numeric:
        raise SchemaMismatch(
            f"Feature columns must be numeric; non-numeric columns: {non_numeric[:10]}"
        )

    obs = pd.DataFrame({label_column: df[label_column].values}, index=df.index.astype(str))
    var = pd.DataFrame(index=features.columns.astype(str))
    return AnnData(X=features.to_numpy(dtype=np.float64), obs=obs, var=var)


def validate_labels(
    adata: AnnData,
    label_column: str,
    classes: Sequence[str] = DEFAULT_CLASSES,
) -> AnnData:
    """Check the label column and turn it into an ordered categorical.

    Raises
    ------
    SchemaMismatch
        If the column is missing, has missing values, or holds values
        outside ``classes``
    """
    if label_column not in adata.obs.columns:
        raise SchemaMismatch(
            f"Label column '{label_column}' not found in test matrix. "
            f"Available columns: {list(adata.obs.columns)}"
        )

    labels = adata.obs[label_column]
    if labels.isna().any():
        raise SchemaMismatch(
            f"Label column '{label_column}' has {int(labels.isna().sum())} missing values"
        )

    labels = labels.astype(str)
    unknown = sorted(set(labels) - set(classes))
    if unknown:
        raise SchemaMismatch(
            f"Label column '{label_column}' holds values {unknown} "
            f"outside the admissible classes {list(classes)}"
        )

    adata.obs[label_column] = pd.Categorical(labels, categories=list(classes), ordered=True)
    return adata
