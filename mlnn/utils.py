"""
Utility Functions
=================

Helper functions for:
- Label encoding
- Batching
- Metrics
- Reproducibility
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def one_hot_encode(labels, num_classes=None):
    """
    Convert integer labels to one-hot encoded vectors.

    Args:
        labels: Integer labels, shape (N,)
        num_classes: Number of classes (inferred if None)

    Returns:
        One-hot matrix, shape (N, num_classes)
    """
    labels = np.asarray(labels).astype(int)

    if num_classes is None:
        num_classes = labels.max() + 1

    one_hot = np.zeros((len(labels), num_classes), dtype=np.float64)
    one_hot[np.arange(len(labels)), labels] = 1.0

    return one_hot


def create_batches(X, y, batch_size, shuffle=True):
    """
    Create mini-batches for training.

    Args:
        X: Features, shape (N, features)
        y: Targets, shape (N,) or (N, C)
        batch_size: Batch size; the last batch may be smaller
        shuffle: Whether to shuffle

    Yields:
        (X_batch, y_batch) tuples
    """
    n_samples = len(X)

    if shuffle:
        indices = np.random.permutation(n_samples)
        X = X[indices]
        y = y[indices]

    for start_idx in range(0, n_samples, batch_size):
        end_idx = min(start_idx + batch_size, n_samples)
        yield X[start_idx:end_idx], y[start_idx:end_idx]


def accuracy_score(y_true, y_pred):
    """
    Compute classification accuracy.

    Args:
        y_true: True labels (integers or one-hot)
        y_pred: Predictions (probabilities or one-hot)

    Returns:
        Accuracy as float
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if y_true.ndim > 1:
        y_true = np.argmax(y_true, axis=1)
    if y_pred.ndim > 1:
        y_pred = np.argmax(y_pred, axis=1)

    return float(np.mean(y_true == y_pred))


def set_random_seed(seed):
    """Set random seed for reproducibility."""
    np.random.seed(seed)
    logger.debug("Random seed set to %d", seed)
