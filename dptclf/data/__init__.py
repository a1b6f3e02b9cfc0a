"""Data utilities for loading and generating test matrices."""

from .loader import load_test_matrix, frame_to_adata, validate_labels
from .synthetic import generate_synthetic_data

__all__ = [
    'load_test_matrix',
    'frame_to_adata',
    'validate_labels',
    'generate_synthetic_data',
]
