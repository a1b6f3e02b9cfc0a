from __future__ import annotations

from pathlib import Path

import pytest

from dptclf.config import EvaluationConfig, config_from_dict, load_config
from dptclf.exceptions import ConfigError, InputNotFound


def test_defaults_match_original_analysis():
    cfg = EvaluationConfig()
    assert cfg.classes == ("CD4", "CD8", "DP")
    assert cfg.label_column == "cluster"
    assert cfg.prob_plot_path == Path(".") / "01.DP_RF_prob.png"
    assert cfg.features_plot_path == Path(".") / "02.DPT_features.png"
    assert cfg.prob_plot_size == (850, 1000)
    assert cfg.features_plot_size == (900, 1600)
    assert cfg.top_n_features == 100


def test_yaml_overrides_defaults(tmp_path: Path):
    cfg_file = tmp_path / "dptclf.yaml"
    cfg_file.write_text(
        "data_dir: /DPT_model\n"
        "decision_rule: threshold\n"
        "threshold: 0.3\n"
        "prob_plot_size: [400, 500]\n",
        encoding="utf-8",
    )
    cfg = load_config(cfg_file)
    assert cfg.model_path == Path("/DPT_model") / "DPT_model.joblib"
    assert cfg.decision_rule == "threshold"
    assert cfg.threshold == pytest.approx(0.3)
    assert cfg.prob_plot_size == (400, 500)


def test_empty_yaml_gives_defaults(tmp_path: Path):
    cfg_file = tmp_path / "empty.yaml"
    cfg_file.write_text("", encoding="utf-8")
    assert load_config(cfg_file) == EvaluationConfig()


def test_missing_default_config_falls_back(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config() == EvaluationConfig()


def test_missing_explicit_config_is_input_not_found(tmp_path: Path):
    with pytest.raises(InputNotFound, match="nope.yaml"):
        load_config(tmp_path / "nope.yaml")


def test_unknown_keys_rejected():
    with pytest.raises(ConfigError, match="Unknown config keys"):
        config_from_dict({"data_dir": ".", "n_trees": 500})


def test_non_mapping_rejected(tmp_path: Path):
    cfg_file = tmp_path / "list.yaml"
    cfg_file.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(cfg_file)


@pytest.mark.parametrize(
    "values, message",
    [
        ({"decision_rule": "vote"}, "decision_rule"),
        ({"positive_class": "NK"}, "positive_class"),
        ({"threshold": 1.5}, "threshold"),
        ({"top_n_features": 0}, "top_n_features"),
        ({"classes": ["CD4"], "positive_class": "CD4"}, "classes"),
        ({"prob_plot_size": [0, 100]}, "prob_plot_size"),
    ],
)
def test_invalid_values_rejected(values, message):
    with pytest.raises(ConfigError, match=message):
        config_from_dict(values)


def test_quoted_numbers_are_normalized(tmp_path: Path):
    cfg_file = tmp_path / "dptclf.yaml"
    cfg_file.write_text(
        "decision_rule: threshold\n"
        "threshold: \"0.4\"\n"
        "top_n_features: 25.0\n"
        "n_repeats: \"3\"\n",
        encoding="utf-8",
    )
    cfg = load_config(cfg_file)
    assert isinstance(cfg.threshold, float) and cfg.threshold == pytest.approx(0.4)
    assert isinstance(cfg.top_n_features, int) and cfg.top_n_features == 25
    assert isinstance(cfg.n_repeats, int) and cfg.n_repeats == 3


@pytest.mark.parametrize(
    "values, message",
    [
        ({"top_n_features": 10.5}, "top_n_features must be a whole number"),
        ({"n_repeats": "many"}, "n_repeats must be a number"),
        ({"threshold": "high"}, "threshold must be a number"),
        ({"features_plot_size": [900.5, 1600]}, "features_plot_size"),
    ],
)
def test_non_numeric_or_fractional_values_rejected(values, message):
    with pytest.raises(ConfigError, match=message):
        config_from_dict(values)


def test_config_path_that_is_a_directory(tmp_path: Path):
    with pytest.raises(InputNotFound, match="Could not read config"):
        load_config(tmp_path)
