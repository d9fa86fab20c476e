"""
Activation Functions
====================

Elementwise non-linearities used by the ``Activation`` layer.

Each function implements:
- forward(x): the activation itself
- derivative(x, y): dy/dx given the input ``x`` and the output ``y`` of the
  same forward call (some derivatives are cheaper from the output)

Softmax is the exception: it is only meant to sit in front of a
cross-entropy or log-likelihood loss, whose gradient (p - t) is already the
gradient w.r.t. the softmax input.
"""

import numpy as np


class ActivationFunction:
    """Base class for all activation functions."""

    def forward(self, x):
        raise NotImplementedError

    def derivative(self, x, y):
        raise NotImplementedError

    def __call__(self, x):
        return self.forward(x)


class ReLU(ActivationFunction):
    """Rectified Linear Unit: f(x) = max(0, x)."""

    def forward(self, x):
        return np.maximum(0, x)

    def derivative(self, x, y):
        return (x > 0).astype(np.float64)


class Sigmoid(ActivationFunction):
    """
    Sigmoid: f(x) = 1 / (1 + exp(-x))

    Derivative:
        f'(x) = f(x) * (1 - f(x))
    """

    def forward(self, x):
        # Clip to keep exp() finite
        x_clipped = np.clip(x, -500, 500)
        return 1.0 / (1.0 + np.exp(-x_clipped))

    def derivative(self, x, y):
        return y * (1 - y)


class Tanh(ActivationFunction):
    """Hyperbolic tangent, derivative 1 - tanh(x)^2."""

    def forward(self, x):
        return np.tanh(x)

    def derivative(self, x, y):
        return 1 - y ** 2


class ELU(ActivationFunction):
    """
    Exponential Linear Unit: f(x) = x if x > 0 else alpha * (exp(x) - 1)

    Args:
        alpha: Saturation value for negative inputs (default: 1.0)
    """

    def __init__(self, alpha=1.0):
        self.alpha = alpha

    def forward(self, x):
        return np.where(x > 0, x, self.alpha * (np.exp(np.minimum(x, 0)) - 1))

    def derivative(self, x, y):
        return np.where(x > 0, 1.0, y + self.alpha)


class Softmax(ActivationFunction):
    """
    Softmax over each row (sample): f(x_i) = exp(x_i) / sum(exp(x_j))

    The row maximum is subtracted before exp() to avoid overflow.
    """

    def forward(self, x):
        x_shifted = x - np.max(x, axis=-1, keepdims=True)
        exp_x = np.exp(x_shifted)
        return exp_x / np.sum(exp_x, axis=-1, keepdims=True)

    def derivative(self, x, y):
        # Folded into the paired loss gradient
        return np.ones_like(y)


# ====================================
# Activation Registry
# ====================================

ACTIVATIONS = {
    'relu': ReLU,
    'sigmoid': Sigmoid,
    'tanh': Tanh,
    'elu': ELU,
    'softmax': Softmax,
}


def get_activation(name):
    """
    Get activation function by name.

    Args:
        name: String name ('relu', 'sigmoid', etc.) or ActivationFunction instance

    Returns:
        ActivationFunction instance
    """
    if isinstance(name, ActivationFunction):
        return name

    name_lower = name.lower().replace('-', '_')
    if name_lower not in ACTIVATIONS:
        available = ', '.join(ACTIVATIONS.keys())
        raise ValueError(f"Unknown activation '{name}'. Available: {available}")

    return ACTIVATIONS[name_lower]()
