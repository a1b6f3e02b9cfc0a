"""Random forest classifier artifact backed by scikit-learn."""

import json
import pickle
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union
import numpy as np
import pandas as pd
from anndata import AnnData
from sklearn.ensemble import RandomForestClassifier

from .base import BaseModel
from ..exceptions import InputNotFound, SchemaMismatch

logger = logging.getLogger(__name__)

CLASSIFIER_FILE = 'classifier.joblib'
META_FILE = 'meta.json'


class ForestModel(BaseModel):
    """A fitted random forest plus the feature order it was trained on.

    Parameters
    ----------
    classifier : RandomForestClassifier
        Fitted forest
    feature_names : list of str, optional
        Training feature order. Defaults to ``classifier.feature_names_in_``.

    Examples
    --------
    >>> model = ForestModel.load('/DPT_model/DPT_model')
    >>> proba = model.predict_proba(adata_test)
    >>> proba.columns.tolist()
    ['CD4', 'CD8', 'DP']
    """

    def __init__(
        self,
        classifier: RandomForestClassifier,
        feature_names: Optional[Sequence[str]] = None,
    ):
        if not isinstance(classifier, RandomForestClassifier):
            raise SchemaMismatch(
                f"Expected a RandomForestClassifier, got {type(classifier).__name__}"
            )
        if not hasattr(classifier, 'estimators_'):
            raise SchemaMismatch("Random forest has not been fitted")

        if feature_names is None:
            if not hasattr(classifier, 'feature_names_in_'):
                raise SchemaMismatch(
                    "Random forest carries no feature names. Fit it on a DataFrame "
                    "or pass feature_names explicitly."
                )
            feature_names = classifier.feature_names_in_

        feature_names = [str(g) for g in feature_names]
        if len(feature_names) != classifier.n_features_in_:
            raise SchemaMismatch(
                f"{len(feature_names)} feature names given for a forest trained on "
                f"{classifier.n_features_in_} features"
            )
        if len(set(feature_names)) != len(feature_names):
            raise SchemaMismatch("Feature names of the model are not unique")
        if (hasattr(classifier, 'feature_names_in_')
                and feature_names != [str(g) for g in classifier.feature_names_in_]):
            raise SchemaMismatch(
                "Feature names disagree with the names the forest was fitted on"
            )

        self.classifier = classifier
        self._feature_names = feature_names

    @classmethod
    def from_estimator(
        cls,
        classifier: RandomForestClassifier,
        feature_names: Optional[Sequence[str]] = None,
    ) -> 'ForestModel':
        """Wrap an already fitted forest."""
        return cls(classifier, feature_names=feature_names)

    @property
    def classes(self) -> List[str]:
        return [str(c) for c in self.classifier.classes_]

    @property
    def feature_names(self) -> List[str]:
        return list(self._feature_names)

    @property
    def n_trees(self) -> int:
        return len(self.classifier.estimators_)

    # ------------------------------------------------------------------
    # Data helpers
    # ------------------------------------------------------------------

    def _to_dense(self, X) -> np.ndarray:
        if hasattr(X, 'toarray'):
            return X.toarray()
        return np.asarray(X)

    def feature_matrix(self, adata: AnnData) -> pd.DataFrame:
        """Return the test matrix with columns in training feature order.

        Extra genes in ``adata`` are dropped. Any training feature missing
        from ``adata`` is an error: zero-filling would give meaningless
        probabilities without any warning.
        """
        query_genes = [str(g) for g in adata.var_names]
        available = set(query_genes)
        missing = [g for g in self._feature_names if g not in available]
        if missing:
            shown = ", ".join(missing[:10])
            more = f" (and {len(missing) - 10} more)" if len(missing) > 10 else ""
            raise SchemaMismatch(
                f"Test matrix lacks {len(missing)} of {len(self._feature_names)} "
                f"model features: {shown}{more}"
            )

        X = self._to_dense(adata.X)
        if not np.issubdtype(X.dtype, np.number):
            raise SchemaMismatch(f"Feature matrix must be numeric, got dtype {X.dtype}")

        n_extra = len(query_genes) - len(self._feature_names)
        if n_extra > 0:
            logger.info(f"Ignoring {n_extra} genes not used by the model")

        # Fast path: identical gene lists in the same order
        if query_genes == self._feature_names:
            return pd.DataFrame(X, index=adata.obs_names, columns=self._feature_names)

        query_idx = {g: i for i, g in enumerate(query_genes)}
        cols = [query_idx[g] for g in self._feature_names]
        return pd.DataFrame(X[:, cols], index=adata.obs_names, columns=self._feature_names)

    def classifier_input(self, X: pd.DataFrame):
        # Forests fitted on arrays warn when given named columns, and vice versa
        if hasattr(self.classifier, 'feature_names_in_'):
            return X
        return X.values

    # ------------------------------------------------------------------
    # predict
    # ------------------------------------------------------------------

    def predict_proba(self, adata: AnnData) -> pd.DataFrame:
        """Predict class probabilities (fraction of tree votes per class)."""
        X = self.feature_matrix(adata)
        proba = self.classifier.predict_proba(self.classifier_input(X))
        return pd.DataFrame(proba, index=X.index, columns=self.classes)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Union[str, Path]) -> None:
        """Save the model to disk using joblib + JSON.

        Creates two files inside *path*::

            <path>/classifier.joblib   fitted forest
            <path>/meta.json           feature order, classes and tree count
        """
        import joblib

        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)

        joblib.dump(self.classifier, path / CLASSIFIER_FILE)

        meta = {
            'model_class': self.__class__.__name__,
            'classes': self.classes,
            'n_trees': self.n_trees,
            'feature_names': self._feature_names,
        }
        with open(path / META_FILE, 'w') as f:
            json.dump(meta, f, indent=2)

        logger.info(f"Saved {self.__class__.__name__} to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ForestModel':
        """Load a model saved by ``save()`` or a bare ``.joblib`` forest.

        Parameters
        ----------
        path : str or Path
            Directory written by ``save()``, or a joblib file holding a forest
            fitted on a DataFrame (so that it knows its feature names).

        Returns
        -------
        model : ForestModel
            Model ready for ``predict_proba()``.
        """
        import joblib

        path = Path(path)
        if not path.exists():
            raise InputNotFound(f"Model file not found: {path}")

        feature_names = None
        if path.is_dir():
            meta_path = path / META_FILE
            clf_path = path / CLASSIFIER_FILE
            for p in (meta_path, clf_path):
                if not p.exists():
                    raise InputNotFound(f"Model file not found: {p}")
            try:
                with open(meta_path) as f:
                    meta = json.load(f)
            except (OSError, ValueError) as e:
                raise InputNotFound(f"Could not read model metadata {meta_path}: {e}") from e
            if not isinstance(meta, dict):
                raise InputNotFound(f"Model metadata {meta_path} is not a JSON object")
            feature_names = meta.get('feature_names')
        else:
            clf_path = path

        try:
            classifier = joblib.load(clf_path)
        except (OSError, EOFError, ValueError, pickle.UnpicklingError,
                ImportError, AttributeError) as e:
            raise InputNotFound(f"Could not load model from {clf_path}: {e}") from e

        model = cls(classifier, feature_names=feature_names)
        logger.info(
            f"Loaded {cls.__name__} from {path}: {model.n_trees} trees, "
            f"{len(model.feature_names)} features, classes {model.classes}"
        )
        return model
