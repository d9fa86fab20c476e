"""
Loss Functions
==============

Loss functions score a prediction against a target of the same shape.

Each loss implements:
- value(target, predicted): scalar loss, summed over every element of the batch
- gradient(target, predicted): dL/d(predicted), same shape as the inputs

Losses return the *total* over the batch; divide by the batch size for an
average (MultiLayerNetwork does so when reporting).

Mismatched shapes are a wiring bug in the calling network and raise
ValueError.
"""

import numpy as np


class Loss:
    """Base class for loss functions."""

    def value(self, target, predicted):
        """Compute loss value."""
        raise NotImplementedError

    def gradient(self, target, predicted):
        """Compute gradient of loss w.r.t. predicted."""
        raise NotImplementedError

    def __call__(self, target, predicted):
        return self.value(target, predicted)

    @staticmethod
    def _check_shapes(target, predicted):
        target = np.asarray(target, dtype=np.float64)
        predicted = np.asarray(predicted, dtype=np.float64)
        if target.shape != predicted.shape:
            raise ValueError(f"Target shape {target.shape} does not match predicted shape {predicted.shape}")
        return target, predicted


class SquaredErrorLoss(Loss):
    """
    Squared error for regression.

    Formula: L = 0.5 * sum((t - p)^2)
    Gradient: dL/dp = p - t
    """

    def value(self, target, predicted):
        target, predicted = self._check_shapes(target, predicted)
        return 0.5 * float(np.sum((target - predicted) ** 2))

    def gradient(self, target, predicted):
        target, predicted = self._check_shapes(target, predicted)
        return predicted - target


class CrossEntropyLoss(Loss):
    """
    Cross-entropy for multi-class classification.

    Formula: L = -sum(t * log2(p + eps))

    ``eps`` only keeps log() away from zero. For valid probabilities in
    (0, 1] the loss is non-negative.

    The gradient is the simplified form p - t. It is the gradient w.r.t. the
    *input of a softmax*, not w.r.t. p, so this loss is only correct behind a
    softmax output layer (whose backward passes the gradient through
    unchanged). Behind any other output layer it trains the wrong thing.

    Args:
        eps: Added to p before the logarithm (default: 1e-15)
    """

    def __init__(self, eps=1e-15):
        self.eps = eps

    def value(self, target, predicted):
        target, predicted = self._check_shapes(target, predicted)
        return float(-np.sum(target * np.log2(predicted + self.eps)))

    def gradient(self, target, predicted):
        target, predicted = self._check_shapes(target, predicted)
        return predicted - target


class LogLikelihoodLoss(Loss):
    """
    Negative log-likelihood of the target classes.

    Formula: L = -sum(log2(p + eps)) over the entries where t == 1
    Gradient: p - t, with the same softmax pairing as CrossEntropyLoss.
    """

    def __init__(self, eps=1e-15):
        self.eps = eps

    def value(self, target, predicted):
        target, predicted = self._check_shapes(target, predicted)
        return float(-np.sum(np.log2(predicted[target == 1] + self.eps)))

    def gradient(self, target, predicted):
        target, predicted = self._check_shapes(target, predicted)
        return predicted - target


# ============================================================================
# Loss Registry
# ============================================================================

LOSSES = {
    'cross_entropy': CrossEntropyLoss,
    'crossentropy': CrossEntropyLoss,
    'ce': CrossEntropyLoss,
    'squared_error': SquaredErrorLoss,
    'mse': SquaredErrorLoss,
    'log_likelihood': LogLikelihoodLoss,
    'nll': LogLikelihoodLoss,
}


def get_loss(name):
    """
    Get loss function by name.

    Args:
        name: String name or Loss instance

    Returns:
        Loss instance
    """
    if isinstance(name, Loss):
        return name

    name_lower = name.lower().replace('-', '_').replace(' ', '_')
    if name_lower not in LOSSES:
        available = ', '.join(sorted(set(LOSSES.keys())))
        raise ValueError(f"Unknown loss '{name}'. Available: {available}")

    return LOSSES[name_lower]()
