"""Evaluation configuration.

Defaults reproduce the fixed paths and plot sizes of the DPT model analysis.
A YAML file can override any field, e.g.::

    data_dir: /DPT_model
    matrix_file: test_matrix.h5ad
    decision_rule: threshold
    threshold: 0.4
"""

import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .exceptions import ConfigError, InputNotFound

logger = logging.getLogger(__name__)

DEFAULT_CLASSES = ('CD4', 'CD8', 'DP')
DECISION_RULES = ('argmax', 'threshold')
DEFAULT_CONFIG_NAME = 'dptclf.yaml'


def _as_number(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _as_count(name: str, value: Any) -> int:
    number = _as_number(name, value)
    if not number.is_integer():
        raise ConfigError(f"{name} must be a whole number, got {value!r}")
    return int(number)


@dataclass
class EvaluationConfig:
    """All knobs of one evaluation run."""

    data_dir: str = '.'
    model_file: str = 'DPT_model.joblib'
    matrix_file: str = 'test_matrix.h5ad'
    label_column: str = 'cluster'
    classes: Tuple[str, ...] = DEFAULT_CLASSES
    positive_class: str = 'DP'
    decision_rule: str = 'argmax'
    threshold: float = 0.5
    top_n_features: int = 100
    n_repeats: int = 5
    random_state: Optional[int] = 42
    output_dir: str = '.'
    prob_plot: str = '01.DP_RF_prob.png'
    prob_plot_size: Tuple[int, int] = (850, 1000)
    features_plot: str = '02.DPT_features.png'
    features_plot_size: Tuple[int, int] = (900, 1600)

    def __post_init__(self):
        self.classes = tuple(str(c) for c in self.classes)
        self.threshold = _as_number('threshold', self.threshold)
        self.top_n_features = _as_count('top_n_features', self.top_n_features)
        self.n_repeats = _as_count('n_repeats', self.n_repeats)
        if self.random_state is not None:
            self.random_state = _as_count('random_state', self.random_state)
        self.prob_plot_size = tuple(_as_count('prob_plot_size', v) for v in self.prob_plot_size)
        self.features_plot_size = tuple(
            _as_count('features_plot_size', v) for v in self.features_plot_size
        )
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError if any field is out of range."""
        if len(self.classes) < 2 or len(set(self.classes)) != len(self.classes):
            raise ConfigError(f"classes must be at least two distinct labels, got {self.classes}")
        if self.positive_class not in self.classes:
            raise ConfigError(
                f"positive_class '{self.positive_class}' is not one of {list(self.classes)}"
            )
        if self.decision_rule not in DECISION_RULES:
            raise ConfigError(
                f"Unknown decision_rule '{self.decision_rule}'. Options: {list(DECISION_RULES)}"
            )
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigError(f"threshold must lie in [0, 1], got {self.threshold}")
        if self.top_n_features <= 0:
            raise ConfigError(f"top_n_features must be positive, got {self.top_n_features}")
        if self.n_repeats <= 0:
            raise ConfigError(f"n_repeats must be positive, got {self.n_repeats}")
        for name in ('prob_plot_size', 'features_plot_size'):
            size = getattr(self, name)
            if len(size) != 2 or min(size) <= 0:
                raise ConfigError(f"{name} must be two positive pixel counts, got {size}")

    @property
    def model_path(self) -> Path:
        return Path(self.data_dir) / self.model_file

    @property
    def matrix_path(self) -> Path:
        return Path(self.data_dir) / self.matrix_file

    @property
    def prob_plot_path(self) -> Path:
        return Path(self.output_dir) / self.prob_plot

    @property
    def features_plot_path(self) -> Path:
        return Path(self.output_dir) / self.features_plot

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping that round-trips through ``yaml.safe_dump``."""
        return {
            k: list(v) if isinstance(v, tuple) else v
            for k, v in asdict(self).items()
        }


def config_from_dict(values: Dict[str, Any]) -> EvaluationConfig:
    """Build a config from a plain mapping, rejecting unknown keys."""
    if not isinstance(values, dict):
        raise ConfigError(f"Config must be a mapping, got {type(values).__name__}")

    known = {f.name for f in fields(EvaluationConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {unknown}. Known keys: {sorted(known)}")

    try:
        return EvaluationConfig(**values)
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"Invalid config value: {e}") from e


def load_config(path: Union[str, Path, None] = None) -> EvaluationConfig:
    """Load an evaluation config from YAML.

    Parameters
    ----------
    path : str or Path, optional
        YAML file. If None, uses ``dptclf.yaml`` in the working directory
        when it exists and the built-in defaults otherwise.

    Returns
    -------
    config : EvaluationConfig
    """
    if path is None:
        default = Path(DEFAULT_CONFIG_NAME)
        if not default.exists():
            logger.info("No config file found, using defaults")
            return EvaluationConfig()
        path = default

    path = Path(path)
    if not path.exists():
        raise InputNotFound(f"Config file not found: {path}")

    try:
        with open(path) as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputNotFound(f"Could not read config {path}: {e}") from e

    try:
        values = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config {path}: {e}") from e

    if values is None:
        values = {}

    config = config_from_dict(values)
    logger.info(f"Loaded config from {path}")
    return config
