"""
mlnn - Multi-Layer Neural Networks from Scratch
===============================================

A small neural-network training framework using only NumPy:
- Layers sharing one forward/backward/update contract
- 2D Convolution via im2col
- Hebbian-learning layers and rules
- Cross-entropy and other losses
- Gradient descent, Momentum, AdaGrad, RMSProp and Adam optimizers
- Artificial landscapes for checking optimizer convergence
"""

from .activations import ReLU, Sigmoid, Tanh, ELU, Softmax, get_activation
from .layers import Layer, LayerTypes, MatrixMap, Linear, Activation, Dropout
from .convolution import Convolution
from .hebbian import HebbianLinear, ConvHebbian
from .learning import HebbianRule, NormalizedHebbianRule, NormalizedZerosumHebbianRule, get_learning_rule
from .losses import CrossEntropyLoss, SquaredErrorLoss, LogLikelihoodLoss, get_loss
from .optimizers import GradientDescent, Momentum, AdaGrad, RMSProp, Adam, get_optimizer
from .landscapes import Sphere, Beale, Rosenbrock
from .network import MultiLayerNetwork, convolutional_classifier
from .utils import one_hot_encode, create_batches, accuracy_score, set_random_seed

__version__ = "1.0.0"
__all__ = [
    # Activations
    'ReLU', 'Sigmoid', 'Tanh', 'ELU', 'Softmax', 'get_activation',
    # Layers
    'Layer', 'LayerTypes', 'MatrixMap', 'Linear', 'Activation', 'Dropout',
    'Convolution', 'HebbianLinear', 'ConvHebbian',
    # Learning rules
    'HebbianRule', 'NormalizedHebbianRule', 'NormalizedZerosumHebbianRule', 'get_learning_rule',
    # Losses
    'CrossEntropyLoss', 'SquaredErrorLoss', 'LogLikelihoodLoss', 'get_loss',
    # Optimizers
    'GradientDescent', 'Momentum', 'AdaGrad', 'RMSProp', 'Adam', 'get_optimizer',
    # Landscapes
    'Sphere', 'Beale', 'Rosenbrock',
    # Network
    'MultiLayerNetwork', 'convolutional_classifier',
    # Utilities
    'one_hot_encode', 'create_batches', 'accuracy_score', 'set_random_seed',
]
