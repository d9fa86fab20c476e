"""
Tests for Layers
================

Unit tests for the buffer container, the shared layer contract and the
Linear, Activation and Dropout layers.
"""

import numpy as np
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from mlnn.layers import MatrixMap, Layer, LayerTypes, Linear, Activation, Dropout
from mlnn.optimizers import GradientDescent, Momentum, RMSProp


class TestMatrixMap:
    """Tests for the named-buffer container."""

    def test_add_declares_zero_buffer(self):
        """Declared buffers start as zeros of the declared shape."""
        buffers = MatrixMap()
        buffers.add('x', 2, 3)

        assert buffers['x'].shape == (2, 3)
        np.testing.assert_array_equal(buffers['x'], 0.0)

    def test_assignment_copies_into_buffer(self):
        """Assignment keeps the same array object."""
        buffers = MatrixMap()
        original = buffers.add('x', 2, 2)

        value = np.arange(4.0).reshape(2, 2)
        buffers['x'] = value
        value[0, 0] = 100.0

        assert buffers['x'] is original
        assert buffers['x'][0, 0] == 0.0

    def test_shape_mismatch_raises(self):
        buffers = MatrixMap()
        buffers.add('x', 2, 3)

        with pytest.raises(ValueError):
            buffers['x'] = np.zeros((3, 2))

    def test_undeclared_name_raises(self):
        buffers = MatrixMap()

        with pytest.raises(KeyError):
            buffers['missing'] = np.zeros((1, 1))

    def test_double_declaration_raises(self):
        buffers = MatrixMap()
        buffers.add('x', 1, 1)

        with pytest.raises(ValueError):
            buffers.add('x', 1, 1)

    def test_resize(self):
        buffers = MatrixMap()
        buffers.add('x', 1, 4)
        buffers.resize('x', 5, 4)

        assert buffers['x'].shape == (5, 4)


class TestLayerContract:
    """Tests for behaviour shared by every layer."""

    def test_backward_before_forward_raises(self):
        """Backward without any forward is a wiring bug."""
        layer = Linear(4, 3)

        with pytest.raises(RuntimeError):
            layer.backward()

    def test_backward_twice_reuses_cache(self):
        """A second backward gives the same gradients."""
        np.random.seed(42)
        layer = Linear(4, 3)
        x = np.random.randn(2, 4)
        dy = np.random.randn(2, 3)

        layer.forward_pass(x)
        first = layer.backward_pass(dy)
        dW = layer.grads['W'].copy()
        second = layer.backward_pass(dy)

        np.testing.assert_allclose(first, second)
        np.testing.assert_allclose(dW, layer.grads['W'])

    def test_ensure_capacity_resizes_buffers(self):
        layer = Linear(4, 3)

        assert layer.ensure_capacity(5)
        assert layer.states['x'].shape == (5, 4)
        assert layer.states['y'].shape == (5, 3)
        assert layer.grads['x'].shape == (5, 4)
        assert layer.grads['y'].shape == (5, 3)
        # Parameter gradients do not depend on the batch size
        assert layer.grads['W'].shape == (3, 4)

        assert not layer.ensure_capacity(5)

    def test_ensure_capacity_invalidates_forward(self):
        """After reallocation the cached forward values are gone."""
        layer = Linear(4, 3)
        layer.forward_pass(np.zeros((2, 4)))
        layer.ensure_capacity(3)

        with pytest.raises(RuntimeError):
            layer.backward()

    def test_invalid_batch_size(self):
        layer = Linear(4, 3)

        with pytest.raises(ValueError):
            layer.ensure_capacity(0)

    def test_forward_pass_accepts_vector(self):
        layer = Linear(4, 3)
        output = layer.forward_pass(np.ones(4))

        assert output.shape == (1, 3)

    def test_forward_pass_returns_copy(self):
        layer = Linear(4, 3)
        output = layer(np.ones((1, 4)))
        output[...] = 123.0

        assert not np.any(layer.states['y'] == 123.0)

    def test_wrong_input_size_raises(self):
        layer = Linear(4, 3)

        with pytest.raises(ValueError):
            layer.forward_pass(np.ones((2, 5)))

    def test_abstract_layer(self):
        layer = Layer(2, 1, 1, 2, 1, 1, LayerTypes.LINEAR)

        with pytest.raises(NotImplementedError):
            layer.forward()

    def test_default_optimizer(self):
        layer = Linear(4, 3)

        assert isinstance(layer.optimizers['W'], GradientDescent)
        assert isinstance(layer.optimizers['b'], GradientDescent)

    def test_set_optimization_by_name(self):
        layer = Linear(4, 3)
        layer.set_optimization('rmsprop', decay=0.5)

        assert isinstance(layer.optimizers['W'], RMSProp)
        assert layer.optimizers['W'].decay == 0.5
        assert layer.optimizers['W'] is not layer.optimizers['b']

    def test_set_optimization_with_prototype(self):
        """Every parameter gets its own copy of the prototype."""
        layer = Linear(4, 3)
        prototype = Momentum(momentum=0.5)
        layer.set_optimization(prototype)

        assert layer.optimizers['W'] is not prototype
        assert layer.optimizers['W'] is not layer.optimizers['b']
        assert layer.optimizers['b'].momentum == 0.5

    def test_parameter_count(self):
        layer = Linear(4, 3)

        assert layer.parameter_count() == 4 * 3 + 3


class TestLinear:
    """Tests for the fully connected layer."""

    def test_forward_values(self):
        layer = Linear(2, 2)
        layer.params['W'] = np.array([[1.0, 2.0], [3.0, 4.0]])
        layer.params['b'] = np.array([[0.5], [-0.5]])

        output = layer.forward_pass(np.array([[1.0, 1.0], [0.0, 2.0]]))

        np.testing.assert_allclose(output, [[3.5, 6.5], [4.5, 7.5]])

    def test_backward_values(self):
        layer = Linear(2, 2)
        layer.params['W'] = np.array([[1.0, 2.0], [3.0, 4.0]])
        x = np.array([[1.0, 1.0], [0.0, 2.0]])
        dy = np.array([[1.0, 0.0], [0.0, 1.0]])

        layer.forward_pass(x)
        dx = layer.backward_pass(dy)

        np.testing.assert_allclose(dx, [[1.0, 2.0], [3.0, 4.0]])
        np.testing.assert_allclose(layer.grads['W'], [[1.0, 1.0], [0.0, 2.0]])
        np.testing.assert_allclose(layer.grads['b'], [[1.0], [1.0]])

    def test_update_moves_against_gradient(self):
        layer = Linear(2, 1)
        layer.params['W'] = np.array([[1.0, 1.0]])
        layer.forward_pass(np.array([[1.0, 2.0]]))
        layer.backward_pass(np.array([[1.0]]))
        layer.update(0.1)

        np.testing.assert_allclose(layer.params['W'], [[0.9, 0.8]])
        np.testing.assert_allclose(layer.params['b'], [[-0.1]])

    def test_update_with_decay(self):
        layer = Linear(1, 1)
        layer.params['W'] = np.array([[2.0]])
        layer.forward_pass(np.array([[0.0]]))
        layer.backward_pass(np.array([[0.0]]))
        layer.update(0.1, decay_rate=0.5)

        np.testing.assert_allclose(layer.params['W'], [[1.0]])


class TestActivation:
    """Tests for the activation layer."""

    def test_relu_forward_backward(self):
        layer = Activation(4, 'relu')
        x = np.array([[-1.0, 0.0, 2.0, -3.0]])

        output = layer.forward_pass(x)
        dx = layer.backward_pass(np.ones((1, 4)))

        np.testing.assert_array_equal(output, [[0.0, 0.0, 2.0, 0.0]])
        np.testing.assert_array_equal(dx, [[0.0, 0.0, 1.0, 0.0]])

    def test_softmax_rows_sum_to_one(self):
        layer = Activation(5, 'softmax')
        output = layer.forward_pass(np.random.randn(3, 5) * 10)

        np.testing.assert_allclose(np.sum(output, axis=1), 1.0)

    def test_softmax_passes_gradient_through(self):
        layer = Activation(3, 'softmax')
        layer.forward_pass(np.random.randn(2, 3))
        dy = np.random.randn(2, 3)

        np.testing.assert_allclose(layer.backward_pass(dy), dy)

    def test_unknown_activation(self):
        with pytest.raises(ValueError):
            Activation(3, 'swish')

    def test_no_parameters(self):
        assert Activation(3, 'tanh').parameter_count() == 0


class TestDropout:
    """Tests for Dropout layer."""

    def test_inference_mode(self):
        """Test that dropout is disabled in test mode."""
        dropout = Dropout(100, keep_ratio=0.5)
        x = np.random.randn(4, 100)

        output = dropout.forward_pass(x, test_mode=True)

        np.testing.assert_array_equal(output, x)

    def test_training_mode(self):
        """Test that dropout zeros out some values and rescales the rest."""
        np.random.seed(42)
        dropout = Dropout(1000, keep_ratio=0.5)
        x = np.ones((10, 1000))

        output = dropout.forward_pass(x, test_mode=False)

        zero_fraction = np.mean(output == 0)
        assert 0.4 < zero_fraction < 0.6
        np.testing.assert_allclose(output[output != 0], 2.0)

    def test_backward_uses_mask(self):
        np.random.seed(42)
        dropout = Dropout(50, keep_ratio=0.7)
        x = np.ones((3, 50))

        output = dropout.forward_pass(x)
        dx = dropout.backward_pass(np.ones((3, 50)))

        np.testing.assert_allclose(dx, output)

    def test_mask_follows_batch_size(self):
        dropout = Dropout(8)
        dropout.forward_pass(np.ones((6, 8)))

        assert dropout.memory['mask'].shape == (6, 8)

    def test_invalid_keep_ratio(self):
        with pytest.raises(ValueError):
            Dropout(8, keep_ratio=0.0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
