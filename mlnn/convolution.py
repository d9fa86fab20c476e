"""
Convolution Layer
=================

2D convolution implemented as "im2col + matrix multiply".

Every receptive field of every sample is copied into one column of a patch
workspace, so the whole convolution becomes a single product of the filter
matrix with that workspace. The backward pass runs the same layout in
reverse ("col2im"), accumulating contributions at input pixels shared by
overlapping receptive fields.

Layouts (one row per sample in states['x'] / states['y']):
    input pixel (d, y, x)       -> column d * H * W + y * W + x
    output value (f, oy, ox)    -> column f * fields + oy * horizontal + ox
    workspace row (d, py, px)   -> d * F * F + py * F + px
    workspace column (b, oy, ox) -> b * fields + oy * horizontal + ox
"""

import numpy as np

from .layers import Layer, LayerTypes


class Convolution(Layer):
    """
    2D Convolutional Layer (valid convolution, no padding).

    Args:
        input_height: Height of the input image
        input_width: Width of the input image
        input_depth: Number of input channels
        number_of_filters: Number of filters (output channels)
        filter_size: Side of the square filter
        stride: Step between receptive fields (default: 1)
        name: Layer name

    Output geometry:
        vertical = (input_height - filter_size) // stride + 1
        horizontal = (input_width - filter_size) // stride + 1

    Pixels beyond the last full stride are dropped; a configuration that
    does not divide evenly is truncated, not rejected.

    Parameters:
        W: (number_of_filters, filter_size * filter_size * input_depth)
        b: (number_of_filters, 1)
    """

    def __init__(self, input_height, input_width, input_depth, number_of_filters,
                 filter_size, stride=1, name=None, layer_type=LayerTypes.CONVOLUTION):
        if filter_size < 1 or stride < 1:
            raise ValueError(f"filter_size and stride must be positive, got {filter_size} and {stride}")
        if filter_size > input_height or filter_size > input_width:
            raise ValueError(f"Filter of size {filter_size} does not fit a "
                             f"{input_height}x{input_width} input")

        self.number_of_filters = number_of_filters
        self.filter_size = filter_size
        self.stride = stride

        self.number_of_receptive_fields_vertical = (input_height - filter_size) // stride + 1
        self.number_of_receptive_fields_horizontal = (input_width - filter_size) // stride + 1

        super().__init__(input_height, input_width, input_depth,
                         self.number_of_receptive_fields_vertical,
                         self.number_of_receptive_fields_horizontal,
                         number_of_filters, layer_type, name)

        self.memory.add('x2col', self.patch_size, self.number_of_receptive_fields * self.batch_size)
        self._init_parameters()

    @property
    def number_of_receptive_fields(self):
        return self.number_of_receptive_fields_vertical * self.number_of_receptive_fields_horizontal

    @property
    def patch_size(self):
        return self.filter_size * self.filter_size * self.input_depth

    def _init_parameters(self):
        # He initialization
        self.add_parameter('W', self.number_of_filters, self.patch_size)
        self.add_parameter('b', self.number_of_filters, 1)
        scale = np.sqrt(2.0 / self.patch_size)
        self.params['W'] = np.random.randn(self.number_of_filters, self.patch_size) * scale

    def _resize_memory(self, batch_size):
        self.memory.resize('x2col', self.patch_size, self.number_of_receptive_fields * batch_size)

    def _receptive_fields(self):
        """Yield (column offset, top, left) of every receptive field in row-major order."""
        horizontal = self.number_of_receptive_fields_horizontal
        for oy in range(self.number_of_receptive_fields_vertical):
            for ox in range(horizontal):
                yield ox + horizontal * oy, oy * self.stride, ox * self.stride

    def _im2col(self):
        """Copy every receptive field of states['x'] into a column of memory['x2col']."""
        batch_size = self.batch_size
        images = self.states['x'].reshape(batch_size, self.input_depth,
                                          self.input_height, self.input_width)
        x2col = self.memory['x2col']
        fields = self.number_of_receptive_fields
        size = self.filter_size

        for field, top, left in self._receptive_fields():
            patch = images[:, :, top:top + size, left:left + size]
            # Columns field, field + fields, ... belong to consecutive samples
            x2col[:, field::fields] = patch.reshape(batch_size, self.patch_size).T

        return x2col

    def _col2im(self, dx2col):
        """Scatter workspace columns back to image layout, summing overlaps."""
        fields = self.number_of_receptive_fields
        batch_size = dx2col.shape[1] // fields
        size = self.filter_size

        dx = np.zeros((batch_size, self.input_depth, self.input_height, self.input_width))
        for field, top, left in self._receptive_fields():
            patch = dx2col[:, field::fields].T.reshape(batch_size, self.input_depth, size, size)
            dx[:, :, top:top + size, left:left + size] += patch

        return dx.reshape(batch_size, self.input_size)

    def _to_filter_major(self, y_col):
        """(filters, batch * fields) -> (batch, filters * fields)."""
        fields = self.number_of_receptive_fields
        return (y_col.reshape(self.number_of_filters, self.batch_size, fields)
                .transpose(1, 0, 2)
                .reshape(self.batch_size, self.output_size))

    def _to_column_major(self, y):
        """(batch, filters * fields) -> (filters, batch * fields)."""
        fields = self.number_of_receptive_fields
        return (y.reshape(self.batch_size, self.number_of_filters, fields)
                .transpose(1, 0, 2)
                .reshape(self.number_of_filters, self.batch_size * fields))

    def _forward(self, test_mode):
        """
        Forward pass.

        1. im2col: receptive fields -> workspace columns
        2. Y = W @ x2col + b, shape (filters, batch * fields)
        3. Reorder Y into one filter-major row per sample
        """
        x2col = self._im2col()
        y_col = self.params['W'] @ x2col + self.params['b']
        self.states['y'] = self._to_filter_major(y_col)

    def _backward(self):
        """
        Backward pass using the workspace filled by the last forward.

        dW = dY @ x2col.T
        db = sum of dY over samples and positions
        dx = col2im(W.T @ dY)
        """
        dy_col = self._to_column_major(self.grads['y'])
        x2col = self.memory['x2col']

        self.grads['W'] = dy_col @ x2col.T
        self.grads['b'] = np.sum(dy_col, axis=1, keepdims=True)
        self.grads['x'] = self._col2im(self.params['W'].T @ dy_col)

    def __repr__(self):
        return (f"Convolution('{self.name}', input={self.input_height}x{self.input_width}x{self.input_depth}, "
                f"filters={self.number_of_filters}, filter_size={self.filter_size}, stride={self.stride})")
