from __future__ import annotations

from pathlib import Path

import matplotlib.image as mpimg
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from dptclf.evaluation.visualization import (
    plot_feature_importance,
    plot_probability_violin,
    probability_groups,
)
from dptclf.exceptions import OutputWriteError


@pytest.fixture()
def predictions():
    rng = np.random.default_rng(0)
    truth = np.repeat(["CD4", "CD8", "DP"], 30)
    dp = np.where(truth == "DP", rng.uniform(0.5, 1.0, 90), rng.uniform(0.0, 0.5, 90))
    rest = 1.0 - dp
    return pd.DataFrame({
        "truth": pd.Categorical(truth, categories=["CD4", "CD8", "DP"]),
        "prob.CD4": rest / 2,
        "prob.CD8": rest / 2,
        "prob.DP": dp,
        "response": pd.Categorical(truth, categories=["CD4", "CD8", "DP"]),
    })


@pytest.fixture()
def importance():
    return pd.DataFrame({
        "variable": [f"Gene_{i}" for i in range(20)],
        "importance": np.linspace(-0.2, 0.3, 20),
    })


def test_probability_groups(predictions):
    groups = probability_groups(predictions, "DP")
    assert list(groups["Outcome"].cat.categories) == ["non-DP", "DP"]
    assert (groups["Outcome"] == "DP").sum() == 30
    np.testing.assert_array_equal(groups["RF"].values, predictions["prob.DP"].values)


def test_violin_written_at_requested_size(tmp_path: Path, predictions):
    out = plot_probability_violin(predictions, tmp_path / "01.DP_RF_prob.png",
                                  size_px=(425, 500))
    assert out.exists()
    height, width = mpimg.imread(out).shape[:2]
    assert (width, height) == (425, 500)


def test_violin_with_constant_group(tmp_path: Path, predictions):
    predictions.loc[predictions["truth"] == "DP", "prob.DP"] = 1.0
    out = plot_probability_violin(predictions, tmp_path / "const.png", size_px=(300, 300))
    assert out.exists()


def test_feature_chart_written_at_requested_size(tmp_path: Path, importance):
    out = plot_feature_importance(importance, tmp_path / "02.DPT_features.png",
                                  size_px=(450, 800))
    height, width = mpimg.imread(out).shape[:2]
    assert (width, height) == (450, 800)


def test_feature_chart_orders_bars_by_magnitude(tmp_path: Path, importance, monkeypatch):
    captured = {}
    real_close = plt.close

    def _capture(fig):
        ax = fig.axes[0]
        captured["labels"] = [t.get_text() for t in ax.get_yticklabels()]
        captured["ticks"] = list(ax.get_yticks())
        real_close(fig)

    monkeypatch.setattr(plt, "close", _capture)
    plot_feature_importance(importance, tmp_path / "bars.png", size_px=(300, 400))

    by_position = [label for _, label in sorted(zip(captured["ticks"], captured["labels"]),
                                                reverse=True)]
    expected = importance.reindex(
        importance["importance"].abs().sort_values(ascending=False).index
    )["variable"].tolist()
    assert by_position == expected


def test_unwritable_target_reports_path(tmp_path: Path, predictions, importance):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")

    with pytest.raises(OutputWriteError, match="not_a_dir"):
        plot_probability_violin(predictions, blocker / "01.png", size_px=(200, 200))
    with pytest.raises(OutputWriteError, match="not_a_dir"):
        plot_feature_importance(importance, blocker / "02.png", size_px=(200, 200))

    assert plt.get_fignums() == []


def test_violin_colors_follow_outcome_group(tmp_path: Path, predictions, monkeypatch):
    import seaborn as sns

    palettes = []
    real_boxplot = sns.boxplot

    def _capture(*args, **kwargs):
        palettes.append(kwargs["palette"])
        return real_boxplot(*args, **kwargs)

    monkeypatch.setattr(sns, "boxplot", _capture)
    plot_probability_violin(predictions, tmp_path / "01.png", size_px=(200, 200))

    assert palettes == [{"non-DP": "#4DA3FF", "DP": "#FF6B6B"}]
