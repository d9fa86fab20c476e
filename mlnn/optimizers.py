"""
Optimization Functions
======================

An optimization function turns the gradient of a single parameter into an
update step. Every trainable parameter of a layer gets its own instance, so
the running statistics kept here (velocities, squared-gradient averages...)
always have the shape of exactly one parameter.

The shared contract is:

    update(param, grad, learning_rate, decay=0.0)

which mutates ``param`` in place:

    param = (1 - decay) * param - calculate_update(param, grad, learning_rate)

This module implements:
- GradientDescent: plain steepest descent
- Momentum: descent with a velocity term
- AdaGrad: per-element step sizes from the sum of squared gradients
- RMSProp: per-element step sizes from a moving average of squared gradients
- Adam: RMSProp plus a moving average of the gradient, with bias correction
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class OptimizationFunction:
    """Base class for optimization functions."""

    def __init__(self):
        self._buffers = {}

    def update(self, param, grad, learning_rate, decay=0.0):
        """
        Apply one update step to ``param`` in place.

        Args:
            param: Parameter buffer, mutated in place
            grad: Gradient of the loss w.r.t. ``param`` (same shape)
            learning_rate: Step size
            decay: Weight decay rate, 0 disables it
        """
        if grad.shape != param.shape:
            raise ValueError(f"Gradient shape {grad.shape} does not match parameter shape {param.shape}")

        delta = self.calculate_update(param, grad, learning_rate)

        if decay:
            param *= (1.0 - decay)
        param -= delta

    def calculate_update(self, param, grad, learning_rate):
        """Compute the step that will be subtracted from the parameter."""
        raise NotImplementedError

    def reset(self):
        """Drop all accumulated state."""
        self._buffers = {}

    def _state(self, name, shape, fill=0.0):
        """
        Return the accumulator ``name``, allocating it on first use.

        The shape is fixed by the first call; asking for another shape later
        means the optimizer got attached to a different parameter.
        """
        buffer = self._buffers.get(name)
        if buffer is None:
            logger.debug("%s: allocating '%s' accumulator of shape %s",
                         type(self).__name__, name, shape)
            buffer = np.full(shape, fill, dtype=np.float64)
            self._buffers[name] = buffer
        elif buffer.shape != shape:
            raise ValueError(f"{type(self).__name__} state '{name}' has shape {buffer.shape}, "
                             f"got a parameter of shape {shape}")
        return buffer

    def __repr__(self):
        return f"{type(self).__name__}()"


class GradientDescent(OptimizationFunction):
    """Steepest descent: delta = learning_rate * grad."""

    def calculate_update(self, param, grad, learning_rate):
        return learning_rate * grad


class Momentum(OptimizationFunction):
    """
    Gradient descent with momentum.

    Args:
        momentum: Fraction of the previous step carried over (default: 0.9)
    """

    def __init__(self, momentum=0.9):
        super().__init__()
        self.momentum = momentum

    def calculate_update(self, param, grad, learning_rate):
        velocity = self._state('velocity', param.shape)
        velocity *= self.momentum
        velocity += learning_rate * grad
        return velocity.copy()

    def __repr__(self):
        return f"Momentum(momentum={self.momentum})"


class AdaGrad(OptimizationFunction):
    """
    Adaptive gradient.

    Each element gets its own step size, shrinking with the sum of all
    squared gradients seen so far.

    Args:
        eps: Smoothing term avoiding division by zero (default: 1e-8)
    """

    def __init__(self, eps=1e-8):
        super().__init__()
        self.eps = eps

    def calculate_update(self, param, grad, learning_rate):
        sum_squares = self._state('sum_squares', param.shape)
        sum_squares += grad ** 2
        return learning_rate * grad / (np.sqrt(sum_squares) + self.eps)

    def __repr__(self):
        return f"AdaGrad(eps={self.eps})"


class RMSProp(OptimizationFunction):
    """
    RMSProp optimizer.

    Keeps an exponential moving average of the squared gradient per element
    and divides the step by its square root. This evens out the step size
    across parameters whose gradients differ in magnitude.

    Update per element:
        avg = decay * avg + (1 - decay) * grad^2
        delta = learning_rate * grad / (sqrt(avg) + eps)

    Args:
        decay: Decay of the moving average (default: 0.9)
        eps: Smoothing term avoiding division by zero (default: 1e-8)
        initial_value: Starting value of the moving average (default: 0.0)

    The average is allocated on the first update with the parameter's shape
    and keeps that shape for the optimizer's lifetime.
    """

    def __init__(self, decay=0.9, eps=1e-8, initial_value=0.0):
        super().__init__()
        self.decay = decay
        self.eps = eps
        self.initial_value = initial_value

    def calculate_update(self, param, grad, learning_rate):
        avg = self._state('mean_squares', param.shape, fill=self.initial_value)
        avg *= self.decay
        avg += (1.0 - self.decay) * grad ** 2
        return learning_rate * grad / (np.sqrt(avg) + self.eps)

    def __repr__(self):
        return f"RMSProp(decay={self.decay}, eps={self.eps})"


class Adam(OptimizationFunction):
    """
    Adam (Adaptive Moment Estimation).

    Args:
        beta1: Decay rate for the first moment (default: 0.9)
        beta2: Decay rate for the second moment (default: 0.999)
        eps: Smoothing term (default: 1e-8)
    """

    def __init__(self, beta1=0.9, beta2=0.999, eps=1e-8):
        super().__init__()
        self.beta1 = beta1
        self.beta2 = beta2
        self.eps = eps
        self.t = 0

    def calculate_update(self, param, grad, learning_rate):
        m = self._state('m', param.shape)
        v = self._state('v', param.shape)
        self.t += 1

        m *= self.beta1
        m += (1 - self.beta1) * grad
        v *= self.beta2
        v += (1 - self.beta2) * grad ** 2

        # Bias-corrected estimates
        m_hat = m / (1 - self.beta1 ** self.t)
        v_hat = v / (1 - self.beta2 ** self.t)

        return learning_rate * m_hat / (np.sqrt(v_hat) + self.eps)

    def reset(self):
        super().reset()
        self.t = 0

    def __repr__(self):
        return f"Adam(beta1={self.beta1}, beta2={self.beta2}, eps={self.eps})"


# ============================================================================
# Optimizer Registry
# ============================================================================

OPTIMIZERS = {
    'gradient_descent': GradientDescent,
    'sgd': GradientDescent,
    'momentum': Momentum,
    'adagrad': AdaGrad,
    'rmsprop': RMSProp,
    'adam': Adam,
}


def get_optimizer(name, **kwargs):
    """
    Get optimization function by name.

    Args:
        name: Registry name, OptimizationFunction subclass or instance
        **kwargs: Arguments to pass to the constructor

    Returns:
        OptimizationFunction instance
    """
    if isinstance(name, OptimizationFunction):
        return name

    if isinstance(name, type) and issubclass(name, OptimizationFunction):
        return name(**kwargs)

    name_lower = name.lower().replace('-', '_')
    if name_lower not in OPTIMIZERS:
        raise ValueError(f"Unknown optimizer '{name}'. Available: {list(OPTIMIZERS.keys())}")

    return OPTIMIZERS[name_lower](**kwargs)
