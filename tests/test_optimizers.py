"""
Tests for Optimization Functions
================================

Unit tests for single update steps and convergence on the sphere landscape.
"""

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mlnn.optimizers import GradientDescent, Momentum, AdaGrad, RMSProp, Adam, get_optimizer
from mlnn.landscapes import Sphere


def minimize(optimizer, landscape, x, learning_rate, eps=1e-3, max_iterations=10000):
    """Run the optimizer until the value is within eps of the minimum."""
    target = landscape.min_value()
    for iteration in range(max_iterations):
        value = landscape.value(x)
        assert np.all(np.isfinite(x)), f"Diverged at iteration {iteration}"
        if abs(value - target) < eps:
            return iteration
        optimizer.update(x, landscape.gradient(x), learning_rate)
    pytest.fail(f"{optimizer} did not converge in {max_iterations} iterations")


class TestGradientDescent:
    """Tests for plain gradient descent."""

    def test_single_step(self):
        param = np.array([[1.0, 2.0]])
        GradientDescent().update(param, np.array([[0.5, -1.0]]), 0.1)

        np.testing.assert_allclose(param, [[0.95, 2.1]])

    def test_decay(self):
        param = np.array([[2.0]])
        GradientDescent().update(param, np.array([[1.0]]), 0.1, decay=0.5)

        np.testing.assert_allclose(param, [[0.9]])

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            GradientDescent().update(np.zeros((2, 2)), np.zeros((2, 1)), 0.1)

    def test_sphere(self):
        minimize(GradientDescent(), Sphere(3), np.ones((3, 1)), 0.1)


class TestMomentum:

    def test_velocity_accumulates(self):
        param = np.zeros((1, 1))
        optimizer = Momentum(momentum=0.5)
        optimizer.update(param, np.ones((1, 1)), 1.0)
        optimizer.update(param, np.ones((1, 1)), 1.0)

        # Steps 1 and 1.5
        np.testing.assert_allclose(param, [[-2.5]])

    def test_sphere(self):
        minimize(Momentum(), Sphere(3), np.ones((3, 1)), 0.01)


class TestAdaGrad:

    def test_first_step_is_learning_rate(self):
        param = np.zeros((1, 2))
        AdaGrad().update(param, np.array([[4.0, -0.1]]), 0.5)

        np.testing.assert_allclose(param, [[-0.5, 0.5]], rtol=1e-6)

    def test_sphere(self):
        minimize(AdaGrad(), Sphere(3), np.ones((3, 1)), 0.5)


class TestRMSProp:
    """Tests for RMSProp."""

    def test_defaults(self):
        optimizer = RMSProp()

        assert optimizer.decay == 0.9
        assert optimizer.eps == 1e-8
        assert optimizer.initial_value == 0.0

    def test_first_step(self):
        """avg = 0.1 * g^2 after one step, so delta = lr * g / (sqrt(0.1) |g|)."""
        param = np.zeros((2, 1))
        grad = np.array([[2.0], [-3.0]])
        RMSProp().update(param, grad, 0.01)

        expected = -0.01 * np.sign(grad) / np.sqrt(0.1)
        np.testing.assert_allclose(param, expected, rtol=1e-6)

    def test_state_allocated_lazily(self):
        optimizer = RMSProp()
        assert optimizer._buffers == {}

        optimizer.update(np.zeros((3, 2)), np.ones((3, 2)), 0.01)

        assert optimizer._buffers['mean_squares'].shape == (3, 2)

    def test_state_shape_is_fixed(self):
        optimizer = RMSProp()
        optimizer.update(np.zeros((3, 2)), np.ones((3, 2)), 0.01)

        with pytest.raises(ValueError):
            optimizer.update(np.zeros((2, 3)), np.ones((2, 3)), 0.01)

    def test_reset(self):
        optimizer = RMSProp()
        optimizer.update(np.zeros((3, 2)), np.ones((3, 2)), 0.01)
        optimizer.reset()
        optimizer.update(np.zeros((2, 3)), np.ones((2, 3)), 0.01)

        assert optimizer._buffers['mean_squares'].shape == (2, 3)

    def test_sphere_1d(self):
        minimize(RMSProp(), Sphere(1), np.ones((1, 1)), 0.005)

    def test_sphere_20d(self):
        minimize(RMSProp(), Sphere(20), np.ones((20, 1)), 0.005)


class TestAdam:

    def test_first_step_is_learning_rate(self):
        """Bias correction makes the first step lr * sign(g)."""
        param = np.zeros((1, 2))
        Adam().update(param, np.array([[5.0, -0.2]]), 0.01)

        np.testing.assert_allclose(param, [[-0.01, 0.01]], rtol=1e-5)

    def test_reset_clears_counter(self):
        optimizer = Adam()
        optimizer.update(np.zeros((1, 1)), np.ones((1, 1)), 0.01)
        optimizer.reset()

        assert optimizer.t == 0

    def test_sphere(self):
        minimize(Adam(), Sphere(1), np.ones((1, 1)), 0.01)


class TestRegistry:
    """Tests for optimizer lookup."""

    @pytest.mark.parametrize('name, cls', [
        ('gradient_descent', GradientDescent),
        ('sgd', GradientDescent),
        ('momentum', Momentum),
        ('adagrad', AdaGrad),
        ('RMSProp', RMSProp),
        ('adam', Adam),
    ])
    def test_lookup(self, name, cls):
        assert isinstance(get_optimizer(name), cls)

    def test_kwargs(self):
        assert get_optimizer('rmsprop', decay=0.5).decay == 0.5

    def test_class(self):
        assert isinstance(get_optimizer(Adam, beta1=0.8), Adam)

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_optimizer('lbfgs')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
