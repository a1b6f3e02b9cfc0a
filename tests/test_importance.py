from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from dptclf.data.synthetic import generate_synthetic_data
from dptclf.evaluation.importance import (
    IMPORTANCE_COLUMNS,
    compute_permutation_importance,
    select_top_features,
)

from conftest import fit_forest


@pytest.fixture(scope="module")
def wide_model():
    return fit_forest(generate_synthetic_data(n_per_class=40, n_genes=150, seed=0))


@pytest.fixture()
def wide_adata():
    return generate_synthetic_data(n_per_class=40, n_genes=150, seed=1)


def test_importance_table_covers_every_feature(wide_model, wide_adata):
    table = compute_permutation_importance(wide_model, wide_adata, n_repeats=2)
    assert list(table.columns) == IMPORTANCE_COLUMNS
    assert len(table) == 150
    assert set(table["variable"]) == set(wide_model.feature_names)
    magnitudes = table["importance"].abs().values
    assert (np.diff(magnitudes) <= 0).all()


def test_sign_follows_association_with_target_class(wide_model, wide_adata):
    table = compute_permutation_importance(
        wide_model, wide_adata, target_class="DP", n_repeats=2
    ).set_index("variable")
    markers = wide_adata.var["marker_for"]

    dp_markers = markers.index[markers == "DP"]
    other_markers = markers.index[markers.isin(["CD4", "CD8"])]
    assert (table.loc[dp_markers, "correlation"] > 0).all()
    assert (table.loc[other_markers, "correlation"] < 0).all()

    used = table[table["importance"] != 0]
    assert (np.sign(used["importance"]) == np.sign(used["correlation"])).all()


def test_top_100_of_many_features(wide_model, wide_adata):
    table = compute_permutation_importance(wide_model, wide_adata, n_repeats=2)
    top = select_top_features(table, n=100)
    assert len(top) == 100
    assert top["variable"].is_unique
    assert (np.diff(top["importance"].abs().values) <= 0).all()


def test_fewer_features_than_requested():
    table = pd.DataFrame({
        "variable": ["A", "B", "C"],
        "importance": [0.1, -0.5, 0.3],
    })
    top = select_top_features(table, n=100)
    assert top["variable"].tolist() == ["B", "C", "A"]


def test_duplicate_feature_names_dropped():
    table = pd.DataFrame({
        "variable": ["A", "B", "A", "C"],
        "importance": [0.1, 0.2, 0.9, -0.05],
    })
    top = select_top_features(table, n=3)
    assert top["variable"].tolist() == ["B", "A", "C"]
    assert top["importance"].tolist() == [0.2, 0.1, -0.05]


def test_non_positive_n_rejected():
    with pytest.raises(ValueError, match="positive"):
        select_top_features(pd.DataFrame({"variable": [], "importance": []}), n=0)
