"""
Layers - From Scratch Implementation
====================================

Every layer owns its buffers and exposes the same contract, so a network can
drive them without knowing what they compute:

- forward(test_mode): reads states['x'], writes states['y']
- backward(): reads grads['y'], writes grads['x'] and one gradient per parameter
- update(learning_rate, decay_rate): applies the optimizer attached to each parameter

Buffers are 2D numpy arrays with one row per sample. They live in four
``MatrixMap`` containers:

    params  - trainable parameters ('W', 'b', ...)
    grads   - gradients: 'x', 'y' and one entry per parameter
    states  - layer input 'x' and output 'y'
    memory  - scratch space (masks, patch workspaces)

Layers implemented here:
- Linear: fully connected layer
- Activation: elementwise non-linearity (relu, sigmoid, tanh, elu, softmax)
- Dropout: inverted dropout, disabled in test mode
"""

import copy
import logging
from enum import Enum

import numpy as np

from .activations import get_activation
from .optimizers import GradientDescent, OptimizationFunction, get_optimizer

logger = logging.getLogger(__name__)


class LayerTypes(Enum):
    """Tags identifying the concrete layer class."""
    LINEAR = 'Linear'
    ACTIVATION = 'Activation'
    DROPOUT = 'Dropout'
    CONVOLUTION = 'Convolution'
    HEBBIAN_LINEAR = 'HebbianLinear'
    CONV_HEBBIAN = 'ConvHebbian'


class MatrixMap(dict):
    """
    Mapping from well-known names to 2D buffers.

    Names are declared once with ``add``. Assigning to a declared name copies
    the value into the existing buffer, so the shape must match exactly;
    assigning to an undeclared name is an error.
    """

    def add(self, name, rows, cols):
        """Declare a zero-filled buffer of shape (rows, cols)."""
        if name in self:
            raise ValueError(f"Buffer '{name}' is already declared")
        dict.__setitem__(self, name, np.zeros((rows, cols)))
        return self[name]

    def resize(self, name, rows, cols):
        """Replace buffer ``name`` with a zero-filled one of shape (rows, cols)."""
        if name not in self:
            raise KeyError(f"Unknown buffer '{name}'")
        dict.__setitem__(self, name, np.zeros((rows, cols)))
        return self[name]

    def __setitem__(self, name, value):
        if name not in self:
            raise KeyError(f"Unknown buffer '{name}'. Declared: {list(self.keys())}")

        buffer = self[name]
        value = np.asarray(value)
        if value.shape != buffer.shape:
            raise ValueError(f"Buffer '{name}' has shape {buffer.shape}, got {value.shape}")

        buffer[...] = value


class Layer:
    """
    Base class for all layers.

    Args:
        input_height, input_width, input_depth: Geometry of one input sample
        output_height, output_width, output_depth: Geometry of one output sample
        layer_type: LayerTypes member
        name: Layer name (default: the layer type)

    Subclasses implement ``_forward`` and ``_backward``. The public
    ``forward``/``backward`` wrap them to enforce the call order: backward
    before any forward is a wiring bug and raises ``RuntimeError``. Calling
    backward twice without a forward in between reuses the values cached by
    the last forward; that is the defined behaviour, not an error.
    """

    def __init__(self, input_height, input_width, input_depth,
                 output_height, output_width, output_depth,
                 layer_type, name=None):
        self.input_height = input_height
        self.input_width = input_width
        self.input_depth = input_depth
        self.output_height = output_height
        self.output_width = output_width
        self.output_depth = output_depth

        self.layer_type = layer_type
        self.name = name if name is not None else layer_type.value
        self.batch_size = 1

        self.params = MatrixMap()
        self.grads = MatrixMap()
        self.states = MatrixMap()
        self.memory = MatrixMap()
        self.optimizers = {}

        self.states.add('x', self.batch_size, self.input_size)
        self.states.add('y', self.batch_size, self.output_size)
        self.grads.add('x', self.batch_size, self.input_size)
        self.grads.add('y', self.batch_size, self.output_size)

        self._forwarded = False

    @property
    def input_size(self):
        return self.input_height * self.input_width * self.input_depth

    @property
    def output_size(self):
        return self.output_height * self.output_width * self.output_depth

    def add_parameter(self, name, rows, cols):
        """Declare a trainable parameter with its gradient and a GradientDescent optimizer."""
        param = self.params.add(name, rows, cols)
        self.grads.add(name, rows, cols)
        self.optimizers[name] = GradientDescent()
        return param

    def set_optimization(self, optimizer='gradient_descent', **kwargs):
        """
        Attach a fresh optimizer to every parameter.

        Args:
            optimizer: Registry name, OptimizationFunction subclass, or an
                instance used as a prototype (each parameter gets a copy)
            **kwargs: Constructor arguments
        """
        for name in self.params:
            if isinstance(optimizer, OptimizationFunction):
                self.optimizers[name] = copy.deepcopy(optimizer)
            else:
                self.optimizers[name] = get_optimizer(optimizer, **kwargs)

    def ensure_capacity(self, batch_size):
        """
        Make every batch-dependent buffer hold ``batch_size`` samples.

        Returns:
            True if buffers were reallocated, False if they already fit
        """
        if batch_size < 1:
            raise ValueError(f"Batch size must be positive, got {batch_size}")
        if batch_size == self.batch_size:
            return False

        logger.debug("%s: resizing batch buffers from %d to %d samples",
                     self.name, self.batch_size, batch_size)
        self.batch_size = batch_size

        for name, buffer in list(self.states.items()):
            self.states.resize(name, batch_size, buffer.shape[1])
        for name in ('x', 'y'):
            self.grads.resize(name, batch_size, self.grads[name].shape[1])
        self._resize_memory(batch_size)

        # Cached forward values are gone
        self._forwarded = False
        return True

    def _resize_memory(self, batch_size):
        """Hook for layers keeping batch-dependent scratch buffers."""

    def forward(self, test_mode=False):
        """
        Forward pass: states['x'] -> states['y'].

        Args:
            test_mode: Disables training-only behaviour (e.g. dropout)
        """
        self._forward(test_mode)
        self._forwarded = True

    def backward(self):
        """Backward pass: grads['y'] -> grads['x'] and parameter gradients."""
        if not self._forwarded:
            raise RuntimeError(f"{self.name}: backward() called before forward()")
        self._backward()

    def update(self, learning_rate, decay_rate=0.0):
        """Apply the attached optimizers using the latest gradients."""
        for name, param in self.params.items():
            self.optimizers[name].update(param, self.grads[name], learning_rate, decay_rate)

    def _forward(self, test_mode):
        raise NotImplementedError

    def _backward(self):
        raise NotImplementedError

    def forward_pass(self, x, test_mode=False):
        """
        Copy ``x`` into the input buffer, run forward and return the output.

        Args:
            x: Input batch, shape (batch, input_size) or (input_size,)

        Returns:
            Copy of states['y'], shape (batch, output_size)
        """
        x = np.asarray(x, dtype=np.float64)
        if x.ndim == 1:
            x = x.reshape(1, -1)

        self.ensure_capacity(x.shape[0])
        self.states['x'] = x
        self.forward(test_mode)
        return self.states['y'].copy()

    def backward_pass(self, dy):
        """
        Copy ``dy`` into grads['y'], run backward and return grads['x'].

        Args:
            dy: Gradient w.r.t. the output of the last forward call
        """
        dy = np.asarray(dy, dtype=np.float64)
        if dy.ndim == 1:
            dy = dy.reshape(1, -1)

        self.grads['y'] = dy
        self.backward()
        return self.grads['x'].copy()

    def __call__(self, x, test_mode=False):
        return self.forward_pass(x, test_mode)

    def parameter_count(self):
        return sum(param.size for param in self.params.values())

    def __repr__(self):
        return (f"{type(self).__name__}('{self.name}', "
                f"in={self.input_height}x{self.input_width}x{self.input_depth}, "
                f"out={self.output_height}x{self.output_width}x{self.output_depth})")


class Linear(Layer):
    """
    Fully Connected Layer.

    Args:
        inputs: Number of input features
        outputs: Number of output features
        weight_init: 'he' or 'xavier'

    Forward: y = x @ W.T + b.T, with W of shape (outputs, inputs) and b of
    shape (outputs, 1).
    """

    def __init__(self, inputs, outputs, name=None, weight_init='he'):
        super().__init__(inputs, 1, 1, outputs, 1, 1, LayerTypes.LINEAR, name)

        if weight_init == 'he':
            scale = np.sqrt(2.0 / inputs)
        else:
            scale = np.sqrt(1.0 / inputs)

        self.add_parameter('W', outputs, inputs)
        self.add_parameter('b', outputs, 1)
        self.params['W'] = np.random.randn(outputs, inputs) * scale

    def _forward(self, test_mode):
        self.states['y'] = self.states['x'] @ self.params['W'].T + self.params['b'].T

    def _backward(self):
        """
        dL/dW = dy.T @ x
        dL/db = column sums of dy
        dL/dx = dy @ W
        """
        dy = self.grads['y']
        self.grads['W'] = dy.T @ self.states['x']
        self.grads['b'] = np.sum(dy, axis=0, keepdims=True).T
        self.grads['x'] = dy @ self.params['W']


class Activation(Layer):
    """
    Activation layer wrapping an elementwise function.

    Args:
        size: Number of features per sample
        activation: Registry name or ActivationFunction instance

    For softmax the incoming gradient is passed through unchanged: it is
    expected to come from a cross-entropy or log-likelihood loss.
    """

    def __init__(self, size, activation='relu', name=None):
        super().__init__(size, 1, 1, size, 1, 1, LayerTypes.ACTIVATION,
                         name if name is not None else str(activation))
        self.activation = get_activation(activation)
        self.activation_name = str(activation)

    def _forward(self, test_mode):
        self.states['y'] = self.activation.forward(self.states['x'])

    def _backward(self):
        derivative = self.activation.derivative(self.states['x'], self.states['y'])
        self.grads['x'] = self.grads['y'] * derivative

    def __repr__(self):
        return f"Activation({self.activation_name}, size={self.input_size})"


class Dropout(Layer):
    """
    Dropout Layer for regularization.

    Uses "inverted dropout": kept activations are scaled by 1/keep_ratio
    during training so test mode is a plain identity.

    Args:
        size: Number of features per sample
        keep_ratio: Probability of keeping an activation (default: 0.5)
    """

    def __init__(self, size, keep_ratio=0.5, name=None):
        super().__init__(size, 1, 1, size, 1, 1, LayerTypes.DROPOUT, name)
        if not 0.0 < keep_ratio <= 1.0:
            raise ValueError(f"keep_ratio must be in (0, 1], got {keep_ratio}")
        self.keep_ratio = keep_ratio
        self.memory.add('mask', self.batch_size, size)

    def _resize_memory(self, batch_size):
        self.memory.resize('mask', batch_size, self.input_size)

    def _forward(self, test_mode):
        x = self.states['x']

        if test_mode:
            self.memory['mask'] = np.ones_like(x)
        else:
            keep = np.random.rand(*x.shape) < self.keep_ratio
            self.memory['mask'] = keep / self.keep_ratio

        self.states['y'] = x * self.memory['mask']

    def _backward(self):
        self.grads['x'] = self.grads['y'] * self.memory['mask']

    def __repr__(self):
        return f"Dropout(size={self.input_size}, keep_ratio={self.keep_ratio})"
