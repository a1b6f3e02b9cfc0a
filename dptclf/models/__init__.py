"""Classifier artifacts."""

from pathlib import Path
from typing import Union

from .base import BaseModel
from .forest import ForestModel


def load_model(path: Union[str, Path]) -> BaseModel:
    """Load a saved classifier artifact from disk.

    Parameters
    ----------
    path : str or Path
        Directory created by ``ForestModel.save()`` or a ``.joblib`` file.

    Returns
    -------
    model : BaseModel
        Ready-to-predict model instance.

    Examples
    --------
    >>> from dptclf.models import load_model
    >>> model = load_model('/DPT_model/DPT_model.joblib')
    >>> proba = model.predict_proba(adata_test)
    """
    return ForestModel.load(path)


__all__ = ['BaseModel', 'ForestModel', 'load_model']
