"""
Multi-Layer Neural Network
==========================

Thin container that sequences layers:
- Layer stacking with size checks
- Forward pass (each layer's output copied into the next layer's input)
- Backward pass
- Parameter update
- Training loop with progress bar
- Prediction and evaluation
- Saving/loading parameters

Example:
    >>> net = convolutional_classifier(28, 28, 1, num_classes=10)
    >>> history = net.fit(X_train, y_train, epochs=5, batch_size=32, learning_rate=0.001)
    >>> loss, accuracy = net.evaluate(X_test, y_test)
"""

import logging

import numpy as np
from tqdm import tqdm

from .convolution import Convolution
from .hebbian import HebbianLearning
from .layers import Activation, Linear
from .losses import get_loss
from .utils import accuracy_score, create_batches, one_hot_encode

logger = logging.getLogger(__name__)


class MultiLayerNetwork:
    """
    Sequence of layers trained against a single loss.

    Args:
        name: Network name
        loss: Loss registry name or Loss instance (default: 'cross_entropy')
    """

    def __init__(self, name='mlnn', loss='cross_entropy'):
        self.name = name
        self.layers = []
        self.loss_fn = get_loss(loss)
        self.history = {
            'loss': [], 'accuracy': [],
            'val_loss': [], 'val_accuracy': [],
        }

    def push_layer(self, layer):
        """Append a layer; its input size must match the previous layer's output size."""
        if self.layers and self.layers[-1].output_size != layer.input_size:
            previous = self.layers[-1]
            raise ValueError(f"Cannot connect '{previous.name}' (output size {previous.output_size}) "
                             f"to '{layer.name}' (input size {layer.input_size})")
        self.layers.append(layer)
        return self

    @property
    def input_size(self):
        return self.layers[0].input_size

    @property
    def output_size(self):
        return self.layers[-1].output_size

    def set_optimization(self, optimizer='gradient_descent', **kwargs):
        """Attach a fresh optimizer to every gradient-trained layer."""
        for layer in self.layers:
            if isinstance(layer, HebbianLearning):
                continue
            layer.set_optimization(optimizer, **kwargs)

    def forward(self, x, test_mode=False):
        """
        Forward pass through the network.

        Args:
            x: Input batch, shape (batch, input_size)
            test_mode: Disables training-only behaviour (dropout)

        Returns:
            Output of the last layer, shape (batch, output_size)
        """
        for layer in self.layers:
            x = layer.forward_pass(x, test_mode)
        return x

    def backward(self, dy):
        """
        Backward pass through the network.

        Args:
            dy: Gradient of the loss w.r.t. the network output

        Returns:
            Gradient w.r.t. the network input
        """
        for layer in reversed(self.layers):
            dy = layer.backward_pass(dy)
        return dy

    def update(self, learning_rate, decay_rate=0.0):
        """Apply every layer's optimizers."""
        for layer in self.layers:
            layer.update(learning_rate, decay_rate)

    def train(self, x, target, learning_rate, decay_rate=0.0):
        """
        One training step: forward, backward, update.

        Returns:
            Total loss over the batch (before the update)
        """
        predictions = self.forward(x, test_mode=False)
        loss = self.loss_fn.value(target, predictions)
        self.backward(self.loss_fn.gradient(target, predictions))
        self.update(learning_rate, decay_rate)
        return loss

    def test(self, x, target):
        """Total loss over the batch in test mode, without learning."""
        predictions = self.forward(x, test_mode=True)
        return self.loss_fn.value(target, predictions)

    def _encode(self, y):
        y = np.asarray(y)
        if y.ndim == 1:
            return one_hot_encode(y, self.output_size)
        return y.astype(np.float64)

    def fit(self, X, y, epochs=10, batch_size=32, learning_rate=0.001, decay_rate=0.0,
            validation_data=None, verbose=True):
        """
        Train the network.

        Args:
            X: Training samples, shape (N, input_size)
            y: Labels, shape (N,) or targets, shape (N, output_size)
            epochs: Number of training epochs
            batch_size: Mini-batch size
            learning_rate: Learning rate passed to every optimizer
            decay_rate: Weight decay passed to every optimizer
            validation_data: Tuple (X_val, y_val) for validation
            verbose: Show a progress bar and log epoch summaries

        Returns:
            Training history dictionary; losses are averaged per sample
        """
        X = np.asarray(X, dtype=np.float64).reshape(len(X), -1)
        targets = self._encode(y)

        self.history = {
            'loss': [], 'accuracy': [],
            'val_loss': [], 'val_accuracy': [],
        }

        n_batches = (len(X) + batch_size - 1) // batch_size

        for epoch in range(epochs):
            epoch_loss = 0.0
            epoch_correct = 0
            n_samples = 0

            batches = create_batches(X, targets, batch_size, shuffle=True)
            if verbose:
                batches = tqdm(batches, total=n_batches, desc=f"Epoch {epoch + 1}/{epochs}")

            for X_batch, y_batch in batches:
                predictions = self.forward(X_batch, test_mode=False)
                epoch_loss += self.loss_fn.value(y_batch, predictions)
                epoch_correct += np.sum(np.argmax(predictions, axis=1) == np.argmax(y_batch, axis=1))
                n_samples += len(X_batch)

                self.backward(self.loss_fn.gradient(y_batch, predictions))
                self.update(learning_rate, decay_rate)

                if verbose:
                    batches.set_postfix({
                        'loss': f'{epoch_loss / n_samples:.4f}',
                        'acc': f'{epoch_correct / n_samples:.4f}'
                    })

            self.history['loss'].append(epoch_loss / len(X))
            self.history['accuracy'].append(epoch_correct / len(X))

            msg = (f"Epoch {epoch + 1}/{epochs} - Loss: {self.history['loss'][-1]:.4f}"
                   f" - Acc: {self.history['accuracy'][-1]:.4f}")

            if validation_data is not None:
                val_loss, val_accuracy = self.evaluate(*validation_data)
                self.history['val_loss'].append(val_loss)
                self.history['val_accuracy'].append(val_accuracy)
                msg += f" - Val Loss: {val_loss:.4f} - Val Acc: {val_accuracy:.4f}"

            if verbose:
                logger.info(msg)

        return self.history

    def predict(self, X):
        """Network output in test mode, shape (N, output_size)."""
        X = np.asarray(X, dtype=np.float64).reshape(len(X), -1)
        return self.forward(X, test_mode=True)

    def predict_classes(self, X):
        return np.argmax(self.predict(X), axis=1)

    def evaluate(self, X, y):
        """
        Evaluate the network.

        Returns:
            Tuple of (mean loss per sample, accuracy)
        """
        predictions = self.predict(X)
        targets = self._encode(y)
        loss = self.loss_fn.value(targets, predictions) / len(predictions)
        return loss, accuracy_score(targets, predictions)

    def summary(self):
        """Return a table of layers and parameter counts."""
        lines = ["=" * 70, f"{self.name}", "-" * 70]

        total_params = 0
        for i, layer in enumerate(self.layers):
            n_params = layer.parameter_count()
            total_params += n_params
            lines.append(f"{i:3d}. {str(layer):<52} Params: {n_params:,}")

        lines.append("-" * 70)
        lines.append(f"Total trainable parameters: {total_params:,}")
        lines.append("=" * 70)
        return '\n'.join(lines)

    def save(self, filepath):
        """
        Save parameters to an .npz file.

        Args:
            filepath: Path to save file (.npz)
        """
        params = {}
        for i, layer in enumerate(self.layers):
            for name, param in layer.params.items():
                params[f'layer_{i}_{name}'] = param

        np.savez(filepath, **params)
        logger.info("Network '%s' saved to %s", self.name, filepath)

    def load(self, filepath):
        """
        Load parameters saved by ``save`` into a network of the same architecture.

        Args:
            filepath: Path to saved parameters (.npz)
        """
        with np.load(filepath) as data:
            for i, layer in enumerate(self.layers):
                for name in layer.params:
                    key = f'layer_{i}_{name}'
                    if key in data:
                        layer.params[name] = data[key]

        logger.info("Network '%s' loaded from %s", self.name, filepath)

    def __repr__(self):
        return f"MultiLayerNetwork('{self.name}', layers={len(self.layers)})"


def convolutional_classifier(input_height, input_width, input_depth, num_classes,
                             number_of_filters=8, filter_size=3, stride=1, optimizer='adam'):
    """
    Build a small classifier:

        Convolution -> ReLU -> Linear -> Softmax

    trained with cross-entropy.

    Args:
        input_height, input_width, input_depth: Input image geometry
        num_classes: Number of output classes
        number_of_filters: Filters of the convolution
        filter_size: Side of the square filters
        stride: Convolution stride
        optimizer: Optimizer attached to every parameter

    Returns:
        MultiLayerNetwork
    """
    net = MultiLayerNetwork('convolutional_classifier', loss='cross_entropy')

    conv = Convolution(input_height, input_width, input_depth, number_of_filters, filter_size, stride)
    net.push_layer(conv)
    net.push_layer(Activation(conv.output_size, 'relu'))
    net.push_layer(Linear(conv.output_size, num_classes))
    net.push_layer(Activation(num_classes, 'softmax'))

    net.set_optimization(optimizer)
    return net
