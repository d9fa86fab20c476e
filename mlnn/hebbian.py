"""
Hebbian Layers
==============

Layers trained by a Hebbian learning rule instead of backpropagation.

They share the Layer contract with one deliberate difference: ``backward``
is a no-op. No gradient is produced, so a network must not place a
gradient-trained layer in front of them and expect it to learn.
``update`` hands the rule the input and output activity cached by the last
forward call.

Layers implemented:
- HebbianLinear: fully connected, rows normalised to unit norm
- ConvHebbian: convolutional filters (im2col shared with Convolution),
  zero-sum and unit norm, with helpers for inspecting what the filters learnt
"""

import copy
import logging

import numpy as np

from .convolution import Convolution
from .layers import Layer, LayerTypes
from .learning import (LearningRule, NormalizedHebbianRule, NormalizedZerosumHebbianRule,
                       get_learning_rule, normalize_rows)

logger = logging.getLogger(__name__)


class HebbianLearning:
    """Mixin replacing the gradient path of a Layer with a learning rule."""

    def set_optimization(self, rule='normalized_hebbian'):
        """Attach a fresh learning rule to every parameter."""
        for name in self.params:
            if isinstance(rule, LearningRule):
                self.optimizers[name] = copy.deepcopy(rule)
            else:
                self.optimizers[name] = get_learning_rule(rule)

    def backward(self):
        """No-op: Hebbian layers do not propagate gradients."""
        logger.debug("%s: backward() ignored, layer learns with %s",
                     self.name, self.optimizers['W'])

    def update(self, learning_rate, decay_rate=0.0):
        """Apply the learning rule to the activity of the last forward call."""
        x, y = self._activity()
        self.optimizers['W'].update(self.params['W'], x, y, learning_rate, decay_rate)

    def _activity(self):
        """Return (input, output) activity with one column per sample."""
        raise NotImplementedError


class HebbianLinear(HebbianLearning, Layer):
    """
    Fully connected Hebbian layer: y = x @ W.T

    Args:
        inputs: Number of input features
        outputs: Number of neurons
        rule: Learning rule (default: NormalizedHebbianRule)
    """

    def __init__(self, inputs, outputs, name=None, rule=NormalizedHebbianRule):
        super().__init__(inputs, 1, 1, outputs, 1, 1, LayerTypes.HEBBIAN_LINEAR, name)

        self.params.add('W', outputs, inputs)
        self.params['W'] = normalize_rows(np.random.rand(outputs, inputs))
        self.set_optimization(rule)

    def _forward(self, test_mode):
        self.states['y'] = self.states['x'] @ self.params['W'].T

    def _activity(self):
        return self.states['x'].T, self.states['y'].T


class ConvHebbian(HebbianLearning, Convolution):
    """
    Convolutional Hebbian layer.

    Same geometry and patch extraction as Convolution, without bias. Each
    filter is a row of W of length filter_size * filter_size * input_depth,
    initialised zero-sum with unit norm.

    Args:
        input_height, input_width, input_depth: Input image geometry
        number_of_filters: Number of filters
        filter_size: Side of the square filter
        stride: Step between receptive fields (default: 1)
        rule: Learning rule (default: NormalizedZerosumHebbianRule)
    """

    def __init__(self, input_height, input_width, input_depth, number_of_filters,
                 filter_size, stride=1, name=None, rule=NormalizedZerosumHebbianRule):
        self._rule = rule
        super().__init__(input_height, input_width, input_depth, number_of_filters,
                         filter_size, stride, name, layer_type=LayerTypes.CONV_HEBBIAN)

    def _init_parameters(self):
        self.params.add('W', self.number_of_filters, self.patch_size)

        W = np.random.rand(self.number_of_filters, self.patch_size)
        W -= np.mean(W, axis=1, keepdims=True)
        self.params['W'] = normalize_rows(W)

        self.set_optimization(self._rule)

    def _forward(self, test_mode):
        x2col = self._im2col()
        self.states['y'] = self._to_filter_major(self.params['W'] @ x2col)

    def _activity(self):
        return self.memory['x2col'], self._to_column_major(self.states['y'])

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def _filter_shape(self):
        if self.input_depth == 1:
            return self.filter_size, self.filter_size
        return self.input_depth, self.filter_size, self.filter_size

    def weight_activations(self):
        """Return every filter reshaped to image form."""
        return [row.reshape(self._filter_shape()).copy() for row in self.params['W']]

    def output_activations(self, sample=0):
        """Return the feature map of every filter for one sample of the last forward."""
        maps = self.states['y'][sample].reshape(self.number_of_filters,
                                                self.output_height, self.output_width)
        return [feature_map.copy() for feature_map in maps]

    def output_reconstruction(self, sample=0):
        """
        Rebuild the input of one sample from its feature maps.

        Each receptive field is rebuilt as the sum of the rectified filters
        weighted by their rectified responses, then scattered back into the
        image with overlaps summed.
        """
        fields = self.number_of_receptive_fields
        responses = self._to_column_major(self.states['y'])[:, sample * fields:(sample + 1) * fields]

        filters = np.maximum(self.params['W'], 0)
        patches = filters.T @ np.maximum(responses, 0)

        image = self._col2im(patches).reshape(self.input_depth, self.input_height, self.input_width)
        return image[0] if self.input_depth == 1 else image

    def output_reconstruction_error(self, sample=0):
        """Squared distance between the normalised reconstruction and the normalised input."""
        reconstruction = self.output_reconstruction(sample).ravel()
        original = self.states['x'][sample]

        def normalized(v):
            norm = np.linalg.norm(v)
            return v / norm if norm > 0 else v

        diff = normalized(reconstruction) - normalized(original)
        return float(np.sum(diff ** 2))

    def _cosine_similarities(self):
        W = self.params['W']
        norms = np.linalg.norm(W, axis=1)
        denom = np.outer(norms, norms)
        dots = W @ W.T
        return np.divide(dots, denom, out=np.zeros_like(dots), where=denom > 0)

    def weight_similarity(self, fill_diagonal=False):
        """
        Cosine similarity between every pair of filters.

        Positive similarities are placed above the diagonal, negative ones
        below it, the rest is 0.

        Args:
            fill_diagonal: Fill the diagonal with alternating 1, -1 to pin
                the colour scale when plotting
        """
        n = self.number_of_filters
        cosine = self._cosine_similarities()
        similarity = np.zeros((n, n))

        for i in range(n):
            for j in range(i):
                sim = cosine[i, j]
                if sim > 0:
                    similarity[j, i] = sim
                else:
                    similarity[i, j] = sim

        if fill_diagonal:
            for i in range(n):
                similarity[i, i] = 1 - 2 * (i % 2)

        return similarity

    def weight_dissimilarity(self):
        """Sine of the angle between every pair of filters (1 = orthogonal)."""
        cosine = np.clip(np.abs(self._cosine_similarities()), 0.0, 1.0)
        return np.sqrt(1 - cosine ** 2)
