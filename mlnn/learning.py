"""
Hebbian Learning Rules
======================

Non-gradient update rules: weights grow with the correlation between the
activity entering a layer and the activity leaving it. They fill the same
slot as an optimization function (one instance per parameter, called from
``Layer.update``) but consume (input, output) activity instead of a
gradient:

    update(W, x, y, learning_rate, decay=0.0)

with x of shape (inputs, samples), y of shape (outputs, samples) and W of
shape (outputs, inputs).
"""

import numpy as np


class LearningRule:
    """Base class for Hebbian learning rules."""

    def update(self, param, x, y, learning_rate, decay=0.0):
        """
        Apply the rule to ``param`` in place.

        Args:
            param: Weight matrix, shape (outputs, inputs)
            x: Input activity, shape (inputs, samples)
            y: Output activity, shape (outputs, samples)
            learning_rate: Step size
            decay: Weight decay rate, 0 disables it
        """
        if y.shape[0] != param.shape[0] or x.shape[0] != param.shape[1] or x.shape[1] != y.shape[1]:
            raise ValueError(f"Activity shapes x={x.shape}, y={y.shape} do not fit weights {param.shape}")

        if decay:
            param *= (1.0 - decay)
        param += self.calculate_update(x, y, learning_rate)
        self.postprocess(param)

    def calculate_update(self, x, y, learning_rate):
        """Plain Hebbian term: learning_rate * y @ x.T."""
        return learning_rate * (y @ x.T)

    def postprocess(self, param):
        """Hook applied to the weights after each update."""

    def reset(self):
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class HebbianRule(LearningRule):
    """Unbounded Hebbian rule: W += learning_rate * y @ x.T."""


def normalize_rows(param):
    """Scale every row of ``param`` to unit L2 norm, leaving all-zero rows untouched."""
    norms = np.linalg.norm(param, axis=1, keepdims=True)
    np.divide(param, norms, out=param, where=norms > 0)
    return param


class NormalizedHebbianRule(LearningRule):
    """Hebbian rule followed by normalisation of every row (neuron) to unit norm."""

    def postprocess(self, param):
        normalize_rows(param)


class NormalizedZerosumHebbianRule(LearningRule):
    """Hebbian rule followed by making every row zero-sum and unit norm."""

    def postprocess(self, param):
        param -= np.mean(param, axis=1, keepdims=True)
        normalize_rows(param)


LEARNING_RULES = {
    'hebbian': HebbianRule,
    'normalized_hebbian': NormalizedHebbianRule,
    'normalized_zerosum_hebbian': NormalizedZerosumHebbianRule,
}


def get_learning_rule(name):
    """
    Get learning rule by name.

    Args:
        name: Registry name, LearningRule subclass or instance

    Returns:
        LearningRule instance
    """
    if isinstance(name, LearningRule):
        return name

    if isinstance(name, type) and issubclass(name, LearningRule):
        return name()

    name_lower = name.lower().replace('-', '_')
    if name_lower not in LEARNING_RULES:
        raise ValueError(f"Unknown learning rule '{name}'. Available: {list(LEARNING_RULES.keys())}")

    return LEARNING_RULES[name_lower]()
