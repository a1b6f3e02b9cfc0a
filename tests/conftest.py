from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest
from sklearn.ensemble import RandomForestClassifier

from dptclf.config import EvaluationConfig
from dptclf.data.synthetic import generate_synthetic_data
from dptclf.models import ForestModel


def fit_forest(adata, label_column="cluster", n_estimators=25, seed=0):
    """Fit a forest on a synthetic matrix, keeping gene names."""
    X = pd.DataFrame(adata.X, index=adata.obs_names, columns=adata.var_names)
    clf = RandomForestClassifier(
        n_estimators=n_estimators, max_features=None, random_state=seed
    )
    clf.fit(X, adata.obs[label_column].astype(str).values)
    return ForestModel.from_estimator(clf)


@pytest.fixture(scope="session")
def train_adata():
    return generate_synthetic_data(n_per_class=60, n_genes=30, seed=0)


@pytest.fixture()
def test_adata():
    return generate_synthetic_data(n_per_class=100, n_genes=30, seed=1)


@pytest.fixture(scope="session")
def model(train_adata):
    return fit_forest(train_adata)


@pytest.fixture()
def model_dir(tmp_path, model):
    path = tmp_path / "DPT_model"
    model.save(path)
    return path


@pytest.fixture()
def run_config(tmp_path, model_dir, test_adata):
    test_adata.write_h5ad(tmp_path / "test_matrix.h5ad")
    return EvaluationConfig(
        data_dir=str(tmp_path),
        model_file=model_dir.name,
        matrix_file="test_matrix.h5ad",
        output_dir=str(tmp_path / "out"),
        n_repeats=2,
        prob_plot_size=(425, 500),
        features_plot_size=(450, 800),
    )
