"""Base interface for pre-trained cell classifiers."""

from abc import ABC, abstractmethod
from typing import List
import numpy as np
import pandas as pd
from anndata import AnnData


class BaseModel(ABC):
    """Abstract base class for an already-fitted classifier artifact.

    The pipeline treats a model as read-only: it only ever asks for class
    probabilities. Training happens elsewhere.
    """

    @property
    @abstractmethod
    def classes(self) -> List[str]:
        """Class labels in the column order of ``predict_proba``."""

    @property
    @abstractmethod
    def feature_names(self) -> List[str]:
        """Feature (gene) names in the order the model expects them."""

    @abstractmethod
    def predict_proba(self, adata: AnnData) -> pd.DataFrame:
        """Predict class probabilities.

        Parameters
        ----------
        adata : AnnData
            Test matrix (cells x genes)

        Returns
        -------
        proba : pd.DataFrame
            One row per cell (indexed by ``adata.obs_names``), one column per
            class, rows summing to 1
        """

    def predict(self, adata: AnnData) -> np.ndarray:
        """Predict hard labels by taking the most probable class."""
        proba = self.predict_proba(adata)
        return proba.columns.values[np.argmax(proba.values, axis=1)]

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"{self.__class__.__name__}(classes={self.classes}, "
            f"n_features={len(self.feature_names)})"
        )
